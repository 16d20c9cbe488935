from typing import List, Sequence


def create_batches(urls: Sequence[str], batch_size: int) -> List[List[str]]:
    """
    Split URLs into contiguous batches of at most ``batch_size`` items

    Args:
        urls: URLs in submission order
        batch_size: Maximum URLs per batch, must be at least 1

    Returns:
        Batches whose concatenation equals ``urls``
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")

    return [list(urls[i : i + batch_size]) for i in range(0, len(urls), batch_size)]
