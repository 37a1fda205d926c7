"""Store feed composition primitives.

- flatten: 书单 -> (书单, 书籍) 对
- interleave: 按来源轮转交错，相邻位置尽量不同源
- FeedGrouper: 把分页书籍流切分为 1-4 本的混排组
- weighted_sample: 按评分加权的无放回抽样

只有 FeedGrouper 与 weighted_sample 使用随机数；随机源可注入以便测试。
"""

import math
import random
from collections.abc import Callable, Hashable, Sequence
from operator import attrgetter
from typing import Any, Protocol, TypeVar

from src.core.config import settings
from src.core.domain.exceptions import ValidationError
from src.core.infrastructure.logging import BusinessEvents
from src.modules.catalog.domain.entities import (
    CatalogItem,
    CuratedList,
    ListWithBooks,
)
from src.modules.feed.domain.entities import FeedGroup

T = TypeVar("T")


class Rated(Protocol):
    @property
    def rating(self) -> float | None: ...


R = TypeVar("R", bound=Rated)


def flatten(lists: Sequence[CuratedList], books_per_list: int) -> list[ListWithBooks]:
    """把每个书单与它前 books_per_list 本书配对，保持原顺序。"""
    if books_per_list < 0:
        raise ValidationError("books_per_list must not be negative")
    return [
        ListWithBooks(curated_list=curated, books=tuple(curated.items[:books_per_list]))
        for curated in lists
    ]


def interleave(
    entries: Sequence[T],
    key: Callable[[T], Hashable] = attrgetter("source"),
) -> list[T]:
    """按来源轮转交错。

    来源顺序为其在输入中首次出现的顺序（稳定，不按字母排序），
    每轮从每个来源各取一个，直到全部取完。
    """
    groups: dict[Hashable, list[T]] = {}
    for entry in entries:
        groups.setdefault(key(entry), []).append(entry)

    result: list[T] = []
    round_index = 0
    while len(result) < len(entries):
        for bucket in groups.values():
            if round_index < len(bucket):
                result.append(bucket[round_index])
        round_index += 1
    return result


def rating_weight(
    rating: float | None,
    *,
    offset: float | None = None,
    floor: float | None = None,
    exponent: float | None = None,
    default_rating: float | None = None,
) -> float:
    """weight = max(rating - offset, floor) ** exponent

    默认参数下 3 星权重 1，5 星权重 9，低分仍有 0.25 的保底权重。
    缺失或非有限的评分按 DEFAULT_RATING 计算。
    """
    offset = settings.WEIGHT_RATING_OFFSET if offset is None else offset
    floor = settings.WEIGHT_FLOOR if floor is None else floor
    exponent = settings.WEIGHT_EXPONENT if exponent is None else exponent
    if rating is None or not math.isfinite(rating):
        rating = settings.DEFAULT_RATING if default_rating is None else default_rating
    return max(rating - offset, floor) ** exponent


def weighted_sample(
    pool: Sequence[R],
    count: int,
    rng: random.Random | None = None,
    weight: Callable[[float | None], float] = rating_weight,
) -> list[R]:
    """按评分加权无放回抽样。

    这是有偏的展示策略而不是公平抽样；结果不要求确定性。
    count >= len(pool) 时原样返回整个池。
    """
    if count <= 0 or not pool:
        return []
    if count >= len(pool):
        if count > len(pool):
            BusinessEvents.sample_pool_exhausted(requested=count, pool_size=len(pool))
        return list(pool)

    rng = rng or random.Random()
    remaining = [(entry, weight(entry.rating)) for entry in pool]
    total_weight = sum(w for _, w in remaining)
    selected: list[R] = []

    while len(selected) < count:
        target = rng.random() * total_weight
        chosen = len(remaining) - 1  # 浮点误差时落到最后一个
        for index, (_, w) in enumerate(remaining):
            target -= w
            if target < 0:
                chosen = index
                break
        entry, w = remaining.pop(chosen)
        selected.append(entry)
        total_weight -= w

    return selected


class FeedGrouper:
    """把不断增长的书籍列表增量切分为混排组。

    used_count 记录已分组的条目数；每次 group() 只处理新增部分，
    已分组的书不会再次出现在新组里。
    """

    def __init__(
        self,
        min_size: int | None = None,
        max_size: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.min_size = settings.GROUP_SIZE_MIN if min_size is None else min_size
        self.max_size = settings.GROUP_SIZE_MAX if max_size is None else max_size
        if not 1 <= self.min_size <= self.max_size:
            raise ValidationError(
                f"Invalid group size range [{self.min_size}, {self.max_size}]"
            )
        self._rng = rng or random.Random()
        self.used_count = 0
        self.groups: list[FeedGroup] = []

    def group(self, items: Sequence[CatalogItem]) -> list[FeedGroup]:
        """为 items[used_count:] 生成新组并返回新组。

        末尾不足抽中大小的剩余条目也会组成一个较小的组，不会滞留。
        """
        if len(items) < self.used_count:
            raise ValidationError(
                f"Item stream shrank from {self.used_count} to {len(items)}"
            )

        new_groups: list[FeedGroup] = []
        while self.used_count < len(items):
            size = self._rng.randint(self.min_size, self.max_size)
            end = min(self.used_count + size, len(items))
            new_groups.append(FeedGroup(items=tuple(items[self.used_count : end])))
            self.used_count = end

        self.groups.extend(new_groups)
        return new_groups

    def reset(self) -> None:
        self.used_count = 0
        self.groups = []


def shuffled(items: Sequence[Any], rng: random.Random | None = None) -> list[Any]:
    result = list(items)
    (rng or random.Random()).shuffle(result)
    return result
