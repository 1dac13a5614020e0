"""
Splitters - Interchangeable segmentation strategies.

Every splitter turns one oversized text into an ordered list of chunks no
longer than ``max_chunk_size``. The dispatcher in ``chunker.py`` decides
which one runs.
"""

import re
from typing import Optional, Sequence

from openrag.models.chunk import Chunk, ChunkMetadata, ChunkOrigin, ChunkSource
from openrag.services.language_rules import StructureRule
from openrag.utils.hashing import generate_content_hash, sub_chunk_id

# Assumed average characters per line when turning the overlap budget into lines
LINE_OVERLAP_CHARS = 20
# How many lines back the line splitter looks for a natural break
NATURAL_BREAK_WINDOW = 10
# Tail fractions of the window searched for sentence and word boundaries
SENTENCE_BREAK_FRACTION = 0.2
WORD_BREAK_FRACTION = 0.1

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
COMMENT_OPENERS = ("//", "/*", "*", "#", "--")
DECLARATION_START = re.compile(
    r"^(?:export|import|const|let|var|function|class|interface|def|fn|func|pub|public|private|protected)\b"
)


def _joined_length(lines: Sequence[str]) -> int:
    """Length of the lines joined with newlines."""
    if not lines:
        return 0
    return sum(len(line) for line in lines) + len(lines) - 1


class ChunkBuilder:
    """
    Builds chunks for one origin.

    Owns the running split index so every chunk of a file gets a distinct id.
    """

    def __init__(self, origin: ChunkOrigin, dependencies: Optional[list[str]] = None):
        self.origin = origin
        self.dependencies = dependencies
        self._index = 0

    def whole(self, content: str) -> Chunk:
        """The single chunk covering an entire file or page."""
        return self._make(
            self.origin.base_id,
            content,
            start_line=1,
            end_line=content.count("\n") + 1,
        )

    def by_lines(self, content: str, start_line: int, end_line: int, part: Optional[int] = None) -> Chunk:
        """Chunk identified by its 1-indexed line range."""
        parts = (start_line, end_line) if part is None else (start_line, end_line, part)
        return self._make(
            sub_chunk_id(self.origin.base_id, *parts),
            content,
            start_line=start_line,
            end_line=end_line,
        )

    def by_index(
        self,
        content: str,
        section: Optional[str] = None,
        heading_level: Optional[int] = None,
        start_line: Optional[int] = None,
        end_line: Optional[int] = None,
    ) -> Chunk:
        """Chunk identified by its position among the file's splits."""
        chunk_id = sub_chunk_id(self.origin.base_id, self._index)
        self._index += 1
        return self._make(
            chunk_id,
            content,
            section=section,
            heading_level=heading_level,
            start_line=start_line,
            end_line=end_line,
        )

    def _make(
        self,
        chunk_id: str,
        content: str,
        section: Optional[str] = None,
        heading_level: Optional[int] = None,
        start_line: Optional[int] = None,
        end_line: Optional[int] = None,
    ) -> Chunk:
        origin = self.origin
        return Chunk(
            id=chunk_id,
            content=content,
            category=origin.category,
            source=ChunkSource(
                url=origin.source_url,
                kind=origin.source_kind,
                path=origin.source_path,
                title=origin.source_title,
            ),
            metadata=ChunkMetadata(
                language=origin.language,
                size=len(content),
                content_hash=generate_content_hash(content),
                section=section or None,
                heading_level=heading_level,
                dependencies=list(self.dependencies) if self.dependencies is not None else None,
                start_line=start_line,
                end_line=end_line,
            ),
        )


class Splitter:
    """Base class holding the size/overlap policy and the hard text splitter."""

    def __init__(self, max_chunk_size: int, chunk_overlap: int):
        self.max_chunk_size = max_chunk_size
        self.chunk_overlap = chunk_overlap

    def split(self, content: str, builder: ChunkBuilder) -> list[Chunk]:
        raise NotImplementedError

    def split_long_text(self, text: str) -> list[str]:
        """
        Hard-split text into windows of at most ``max_chunk_size``.

        Each cut prefers a sentence end, then a word boundary; the next window
        starts ``chunk_overlap`` characters before the cut.
        """
        pieces: list[str] = []
        size = self.max_chunk_size
        start = 0

        while start < len(text):
            end = start + size
            if end >= len(text):
                pieces.append(text[start:])
                break

            cut = self._find_text_break(text, start, end)
            pieces.append(text[start:cut])

            next_start = max(0, cut - self.chunk_overlap)
            start = next_start if next_start > start else cut

        return pieces

    def _find_text_break(self, text: str, start: int, end: int) -> int:
        """Position to cut ``text[start:end]`` at, searching only the window's tail."""
        size = end - start

        sentence_floor = max(start, end - int(size * SENTENCE_BREAK_FRACTION))
        for i in range(end - 1, sentence_floor, -1):
            if text[i] in ".!?" and text[i + 1] in " \n":
                return i + 1

        word_floor = max(start, end - int(size * WORD_BREAK_FRACTION))
        for i in range(end - 1, word_floor, -1):
            if text[i] in " \n":
                return i

        return end

    def _emit_lines(
        self,
        chunks: list[Chunk],
        builder: ChunkBuilder,
        lines: Sequence[str],
        start_index: int,
    ) -> None:
        """Append ``lines`` (starting at 0-based ``start_index``) as a line-range chunk."""
        content = "\n".join(lines)
        if not content.strip():
            return

        start_line = start_index + 1
        end_line = start_index + len(lines)
        if len(content) <= self.max_chunk_size:
            chunks.append(builder.by_lines(content, start_line, end_line))
            return

        # A single line longer than the limit
        for part, piece in enumerate(self.split_long_text(content)):
            if piece.strip():
                chunks.append(builder.by_lines(piece, start_line, end_line, part))

    def _emit_section(
        self,
        chunks: list[Chunk],
        builder: ChunkBuilder,
        lines: Sequence[str],
        start_index: int,
        section: Optional[str],
        heading_level: Optional[int] = None,
    ) -> None:
        """Append ``lines`` as chunk(s) tagged with their heading."""
        content = "\n".join(lines)
        if not content.strip():
            return

        start_line = start_index + 1
        end_line = start_index + len(lines)
        pieces = [content] if len(content) <= self.max_chunk_size else self.split_long_text(content)
        for piece in pieces:
            if piece.strip():
                chunks.append(
                    builder.by_index(
                        piece,
                        section=section,
                        heading_level=heading_level,
                        start_line=start_line,
                        end_line=end_line,
                    )
                )


class StructuralCodeSplitter(Splitter):
    """
    Keeps function and class bodies together.

    Tracks a naive brace depth (no string or comment awareness). A structure
    start closes whatever was accumulated before it; a structure ends when the
    depth returns to zero on a line ending in ``}``.
    """

    def __init__(self, rule: StructureRule, max_chunk_size: int, chunk_overlap: int):
        super().__init__(max_chunk_size, chunk_overlap)
        self.rule = rule

    def split(self, content: str, builder: ChunkBuilder) -> list[Chunk]:
        chunks: list[Chunk] = []
        lines = content.split("\n")

        current: list[str] = []
        current_length = 0
        chunk_start = 0
        brace_depth = 0
        in_structure = False

        for i, line in enumerate(lines):
            # Never let the accumulated text grow past the limit
            if current and current_length + 1 + len(line) > self.max_chunk_size:
                self._emit_lines(chunks, builder, current, chunk_start)
                current, current_length, chunk_start = [], 0, i

            current_length = current_length + 1 + len(line) if current else len(line)
            current.append(line)
            brace_depth += line.count("{") - line.count("}")

            if self.rule.is_structure_start(line):
                if len(current) > 1:
                    self._emit_lines(chunks, builder, current[:-1], chunk_start)
                current, current_length, chunk_start = [line], len(line), i
                in_structure = True

            if (
                in_structure
                and self.rule.brace_delimited
                and brace_depth == 0
                and line.strip().endswith("}")
            ):
                self._emit_lines(chunks, builder, current, chunk_start)
                current, current_length, chunk_start = [], 0, i + 1
                in_structure = False

        if current:
            self._emit_lines(chunks, builder, current, chunk_start)

        return chunks


class LineSplitter(Splitter):
    """
    Last-resort splitter for code and text without structure rules.

    Cuts at natural breaks and repeats a few trailing lines of each chunk at
    the head of the next one.
    """

    def split(self, content: str, builder: ChunkBuilder) -> list[Chunk]:
        chunks: list[Chunk] = []
        lines = content.split("\n")

        current: list[str] = []
        chunk_start = 0
        carried = 0  # overlap lines at the head of `current`, already emitted

        for line in lines:
            while current and _joined_length(current) + 1 + len(line) > self.max_chunk_size:
                if carried == len(current):
                    # Only overlap is pending; drop it instead of emitting it twice
                    chunk_start += carried
                    current, carried = [], 0
                    break

                cut = self._find_natural_break(current, floor=carried)
                self._emit_lines(chunks, builder, current[:cut + 1], chunk_start)

                overlap_start = self._overlap_start(current, cut)
                carried = cut + 1 - overlap_start
                chunk_start += overlap_start
                current = current[overlap_start:]

            current.append(line)

        if len(current) > carried:
            self._emit_lines(chunks, builder, current, chunk_start)

        return chunks

    def _find_natural_break(self, lines: Sequence[str], floor: int = 0) -> int:
        """
        Index of the last line to keep in the chunk being closed.

        Lines before ``floor`` were already emitted and are never a cut point.
        """
        lowest = max(floor, len(lines) - NATURAL_BREAK_WINDOW)
        for i in range(len(lines) - 1, lowest - 1, -1):
            stripped = lines[i].strip()
            if stripped == "" or stripped == "}" or stripped.endswith(";"):
                return i
            # Comments and declarations open the next block
            if i > floor and (stripped.startswith(COMMENT_OPENERS) or DECLARATION_START.match(stripped)):
                return i - 1
        return len(lines) - 1

    def _overlap_start(self, lines: Sequence[str], cut: int) -> int:
        """
        First line of the overlap carried into the next chunk.

        At most ``chunk_overlap // LINE_OVERLAP_CHARS`` lines and never more
        than ``chunk_overlap`` characters; the first line of the closed chunk
        is never repeated.
        """
        max_lines = self.chunk_overlap // LINE_OVERLAP_CHARS
        start = cut + 1
        used = 0
        while start > 1 and (cut + 1 - start) < max_lines:
            needed = len(lines[start - 1]) + 1
            if used + needed > self.chunk_overlap:
                break
            used += needed
            start -= 1
        return start


class ParagraphSplitter(Splitter):
    """Greedy paragraph packing for generic text and pages without headings."""

    def split(self, content: str, builder: ChunkBuilder) -> list[Chunk]:
        chunks: list[Chunk] = []
        current = ""

        for paragraph in PARAGRAPH_BREAK.split(content):
            if not paragraph.strip():
                continue

            separator = 2 if current else 0
            if len(current) + separator + len(paragraph) + self.chunk_overlap <= self.max_chunk_size:
                current = f"{current}\n\n{paragraph}" if current else paragraph
                continue

            if current:
                chunks.append(builder.by_index(current))

            if len(paragraph) > self.max_chunk_size:
                for piece in self.split_long_text(paragraph):
                    if piece.strip():
                        chunks.append(builder.by_index(piece))
                current = ""
            else:
                current = paragraph

        if current:
            chunks.append(builder.by_index(current))

        return chunks


class MarkdownSplitter(Splitter):
    """Starts a new chunk at every markdown heading outside fenced code."""

    def split(self, content: str, builder: ChunkBuilder) -> list[Chunk]:
        chunks: list[Chunk] = []
        lines = content.split("\n")

        current: list[str] = []
        current_length = 0
        chunk_start = 0
        section: Optional[str] = None
        heading_level: Optional[int] = None
        in_fence = False

        for i, line in enumerate(lines):
            if FENCE_PATTERN.match(line):
                in_fence = not in_fence

            heading = None if in_fence else HEADING_PATTERN.match(line)
            if heading:
                if current:
                    self._emit_section(chunks, builder, current, chunk_start, section, heading_level)
                section = heading.group(2).strip()
                heading_level = len(heading.group(1))
                current, current_length, chunk_start = [line], len(line), i
                continue

            # Oversized body: split and keep going under the same heading
            if current and current_length + 1 + len(line) > self.max_chunk_size:
                self._emit_section(chunks, builder, current, chunk_start, section, heading_level)
                current, current_length, chunk_start = [], 0, i

            current_length = current_length + 1 + len(line) if current else len(line)
            current.append(line)

        if current:
            self._emit_section(chunks, builder, current, chunk_start, section, heading_level)

        return chunks


class HeadingSplitter(Splitter):
    """
    Splits a crawled page at headings extracted separately from its DOM.

    Matching is fuzzy and best-effort: a line matches a heading when equal to
    it, when it ends with it, or when it is contained in it.
    """

    # Shortest line allowed to match by containment
    MIN_CONTAINED_LENGTH = 3

    def __init__(
        self,
        headings: Sequence[str],
        max_chunk_size: int,
        chunk_overlap: int,
        min_section_chars: int = 50,
    ):
        super().__init__(max_chunk_size, chunk_overlap)
        self.min_section_chars = min_section_chars
        self._candidates = [
            (self._normalize(heading), heading.strip())
            for heading in headings
            if heading and heading.strip()
        ]

    @staticmethod
    def _normalize(text: str) -> str:
        return " ".join(text.split())

    def match_heading(self, line: str) -> Optional[str]:
        """Return the candidate heading ``line`` matches, if any."""
        text = self._normalize(line)
        if not text:
            return None
        for normalized, heading in self._candidates:
            if text == normalized or text.endswith(normalized):
                return heading
            if len(text) >= self.MIN_CONTAINED_LENGTH and text in normalized:
                return heading
        return None

    def split(self, content: str, builder: ChunkBuilder) -> list[Chunk]:
        if not self._candidates:
            return []

        chunks: list[Chunk] = []
        lines = content.split("\n")

        current: list[str] = []
        current_length = 0
        chunk_start = 0
        section: Optional[str] = None
        matched_any = False

        for i, line in enumerate(lines):
            heading = self.match_heading(line)
            if heading is not None:
                matched_any = True
                if current:
                    self._close_section(chunks, builder, current, chunk_start, section)
                section = heading
                current, current_length, chunk_start = [line], len(line), i
                continue

            if current and current_length + 1 + len(line) > self.max_chunk_size:
                self._close_section(chunks, builder, current, chunk_start, section)
                current, current_length, chunk_start = [], 0, i

            current_length = current_length + 1 + len(line) if current else len(line)
            current.append(line)

        if current:
            self._close_section(chunks, builder, current, chunk_start, section)

        if not matched_any:
            return []
        return chunks

    def _close_section(
        self,
        chunks: list[Chunk],
        builder: ChunkBuilder,
        lines: Sequence[str],
        start_index: int,
        section: Optional[str],
    ) -> None:
        # Navigation artifacts produce near-empty sections
        if len("\n".join(lines).strip()) <= self.min_section_chars:
            return
        self._emit_section(chunks, builder, lines, start_index, section)
