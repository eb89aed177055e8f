"""Fixed-size overlapping text windows."""

from .exceptions import InvalidChunkingError


def chunk_text(text: str, chunk_size: int = 1000, overlap_size: int = 200) -> list[str]:
    """Split text into windows of at most chunk_size characters.

    Each window after the first repeats the last overlap_size characters of
    the previous one. Boundaries depend only on the arguments, so re-chunking
    the same text yields the same chunks.

    Args:
        text: Text to split.
        chunk_size: Maximum characters per chunk.
        overlap_size: Characters shared between neighbouring chunks.

    Returns:
        Ordered list of chunks. Empty for empty text.

    Raises:
        InvalidChunkingError: If the cursor could not advance.
    """
    if chunk_size <= 0:
        raise InvalidChunkingError(
            "chunk_size must be positive", {"chunk_size": chunk_size}
        )
    if overlap_size < 0 or overlap_size >= chunk_size:
        raise InvalidChunkingError(
            "overlap_size must be in [0, chunk_size)",
            {"chunk_size": chunk_size, "overlap_size": overlap_size},
        )

    if not text:
        return []

    step = chunk_size - overlap_size
    length = len(text)
    chunks = []
    cursor = 0

    while True:
        end = min(cursor + chunk_size, length)
        chunks.append(text[cursor:end])
        if end >= length:
            break
        cursor += step

    return chunks
