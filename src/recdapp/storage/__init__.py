from .publisher import ContentPublisher, MockContentPublisher, NFTStoragePublisher

__all__ = ["ContentPublisher", "MockContentPublisher", "NFTStoragePublisher"]
