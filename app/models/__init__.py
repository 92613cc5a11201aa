from app.models.brand_profile import BrandProfile
from app.models.keyword_tracking import KeywordTracking
from app.models.scan_queue_item import QueuePriority, QueueStatus, ScanQueueItem, ScanType
from app.models.scan_result import ScanResult

__all__ = [
    "BrandProfile",
    "KeywordTracking",
    "QueuePriority",
    "QueueStatus",
    "ScanQueueItem",
    "ScanResult",
    "ScanType",
]
