class IndexerError(Exception):
    """Base class for pipeline errors"""


class EmptyUrlListError(IndexerError):
    """The stored URL list is missing or holds no URLs"""
