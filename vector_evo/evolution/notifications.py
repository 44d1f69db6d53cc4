"""
非致命通知 (Non-fatal Notifications)

變異過程中可恢復的數值邊界情況（重試上限、長度不一致等）不會中斷演化，
而是透過此模組記錄警告。每個通知鍵在整個程序中只記錄一次，其後僅累計次數。
"""

import logging
import threading
from typing import Dict

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_counts: Dict[str, int] = {}

# 常用通知鍵
RETRY_LIMIT_REACHED = "retry-limit-reached"
LENGTH_MISMATCH = "length-mismatch"
TOO_FEW_CHUNKS = "too-few-chunks"
INTERMEDIATE_GAVE_UP = "intermediate-gave-up"


def warn_once(log: logging.Logger, key: str, message: str) -> bool:
    """記錄一次性警告

    Args:
        log: 要寫入的 logger
        key: 通知鍵，相同鍵只會記錄第一次
        message: 警告訊息

    Returns:
        此次呼叫是否實際寫入了日誌
    """
    with _lock:
        count = _counts.get(key, 0)
        _counts[key] = count + 1
    if count == 0:
        log.warning(f"{message} (further occurrences of '{key}' are not logged)")
        return True
    return False


def notification_counts() -> Dict[str, int]:
    """取得各通知鍵被觸發的次數"""
    with _lock:
        return dict(_counts)


def reset_notifications() -> None:
    """清除所有通知紀錄"""
    with _lock:
        _counts.clear()
    logger.debug("Notification counters cleared")
