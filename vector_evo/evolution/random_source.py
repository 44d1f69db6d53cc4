"""
亂數來源 (Random Source)

每個工作者必須擁有獨立的亂數產生器。此模組以 numpy 的 SeedSequence
衍生互不相關的 Generator，確保相同種子可重現相同結果。
"""

import logging
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)


def make_generator(seed: Optional[int] = None) -> np.random.Generator:
    """建立單一亂數產生器"""
    return np.random.default_rng(seed)


def spawn_generators(seed: Optional[int], count: int) -> List[np.random.Generator]:
    """為 count 個工作者建立獨立的亂數產生器

    Args:
        seed: 根種子，None 表示使用系統熵
        count: 工作者數量

    Returns:
        長度為 count 的 Generator 列表

    Raises:
        ValueError: count 小於 1
    """
    if count < 1:
        raise ValueError(f"Worker count must be >= 1, got {count}")
    root = np.random.SeedSequence(seed)
    children = root.spawn(count)
    logger.debug(f"Spawned {count} random generators from entropy {root.entropy}")
    return [np.random.default_rng(child) for child in children]
