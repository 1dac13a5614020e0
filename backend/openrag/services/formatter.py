"""
Formatter - Renders ranked results as context for a model prompt.
"""

from typing import Optional

from openrag.models.search import (
    ContextFormat,
    ContextSource,
    FormatOptions,
    FormattedContext,
    SearchResult,
)

RESULT_SEPARATOR = "\n\n---\n\n"


def format_for_ai(results: list[SearchResult], options: Optional[FormatOptions] = None) -> FormattedContext:
    """
    Concatenate results with optional citations until max_length is reached.

    Args:
        results: Ranked results, best first
        options: Length limit, citation toggle and target style

    Returns:
        FormattedContext with text, cited sources and character count
    """
    options = options or FormatOptions()

    parts: list[str] = []
    sources: list[ContextSource] = []
    seen_urls: set[str] = set()
    current_length = 0

    for result in results:
        citation = ""
        if options.include_citations:
            label = result.source.title or result.source.url
            citation = f"\n\nSource: {label} (Score: {result.score * 100:.1f}%)"

        block = f"{result.content}{citation}{RESULT_SEPARATOR}"
        if current_length + len(block) > options.max_length:
            break

        parts.append(block)
        current_length += len(block)

        if result.source.url not in seen_urls:
            seen_urls.add(result.source.url)
            sources.append(
                ContextSource(
                    title=result.source.title or result.source.url,
                    url=result.source.url,
                    kind=result.source.kind,
                )
            )

    text = "".join(parts)
    if options.format == ContextFormat.OPENAI:
        text = f"## Context Information\n\n{text}"
    elif options.format == ContextFormat.CLAUDE:
        text = f"<context>\n{text}</context>"

    return FormattedContext(
        text=text.strip(),
        sources=sources,
        character_count=len(text),
    )
