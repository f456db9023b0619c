"""
Splits document text into overlapping chunks at paragraph boundaries.
"""

import re
from typing import List

_WHITESPACE = re.compile(r'[ \t]+')


class TextChunker:
    """Paragraph-first chunker; oversized paragraphs are split on words."""

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap must be non-negative")
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split(self, content: str) -> List[str]:
        if not content or not content.strip():
            return []

        paragraphs = []
        for paragraph in re.split(r'\n\s*\n', content):
            paragraph = _WHITESPACE.sub(' ', paragraph).strip()
            if not paragraph:
                continue
            if len(paragraph) > self.chunk_size:
                paragraphs.extend(self._split_words(paragraph))
            else:
                paragraphs.append(paragraph)

        chunks = []
        current_chunk = ""
        for paragraph in paragraphs:
            if current_chunk and len(current_chunk) + len(paragraph) + 2 > self.chunk_size:
                chunks.append(current_chunk.strip())
                overlap = self._tail(current_chunk)
                # Overlap is dropped if it would push the next chunk over the limit
                if overlap and len(overlap) + len(paragraph) + 2 <= self.chunk_size:
                    current_chunk = overlap + "\n\n" + paragraph
                else:
                    current_chunk = paragraph
            else:
                current_chunk += ("\n\n" if current_chunk else "") + paragraph

        if current_chunk.strip():
            chunks.append(current_chunk.strip())

        return chunks

    def _split_words(self, paragraph: str) -> List[str]:
        pieces = []
        current = ""
        for word in paragraph.split(' '):
            while len(word) > self.chunk_size:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.append(word[:self.chunk_size])
                word = word[self.chunk_size:]
            if current and len(current) + len(word) + 1 > self.chunk_size:
                pieces.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        if current:
            pieces.append(current)
        return pieces

    def _tail(self, text: str) -> str:
        if not self.chunk_overlap or len(text) <= self.chunk_overlap:
            return ""
        tail = text[-self.chunk_overlap:]
        # Start the overlap on a word boundary
        space = tail.find(' ')
        if 0 <= space < len(tail) - 1:
            tail = tail[space + 1:]
        return tail.strip()
