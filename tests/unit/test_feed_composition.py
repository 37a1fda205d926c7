"""Feed 组合原语测试：flatten / interleave / FeedGrouper / weighted_sample。"""

import random

import pytest

from src.core.domain.exceptions import ValidationError
from src.modules.feed.domain.composition import (
    FeedGrouper,
    flatten,
    interleave,
    rating_weight,
    shuffled,
    weighted_sample,
)
from src.modules.feed.domain.entities import FeedGroup
from tests.factories import make_item, make_list


class TestFlatten:
    """flatten 测试。"""

    def test_limits_books_per_list_and_keeps_order(self):
        """每个书单最多取 books_per_list 本，保持原顺序。"""
        lists = [make_list("a", "NYT", book_count=5), make_list("b", "Amazon", book_count=2)]

        result = flatten(lists, books_per_list=3)

        assert [entry.curated_list.id for entry in result] == ["a", "b"]
        assert [book.id for book in result[0].books] == ["a-b0", "a-b1", "a-b2"]
        assert len(result[1].books) == 2
        assert result[0].source == "NYT"

    def test_zero_books_per_list(self):
        result = flatten([make_list("a", "NYT")], books_per_list=0)
        assert result[0].books == ()

    def test_negative_books_per_list_rejected(self):
        with pytest.raises(ValidationError):
            flatten([make_list("a", "NYT")], books_per_list=-1)

    def test_deterministic(self):
        lists = [make_list(f"l{i}", "NYT", book_count=4) for i in range(3)]
        assert flatten(lists, 2) == flatten(lists, 2)


class TestInterleave:
    """interleave 测试。"""

    def test_round_robin_fairness(self):
        """A=[a1,a2,a3], B=[b1,b2] -> [a1,b1,a2,b2,a3]。"""
        entries = [
            make_list("a1", "A"),
            make_list("a2", "A"),
            make_list("a3", "A"),
            make_list("b1", "B"),
            make_list("b2", "B"),
        ]

        result = interleave(entries)

        assert [entry.id for entry in result] == ["a1", "b1", "a2", "b2", "a3"]

    def test_source_order_is_first_seen_not_alphabetical(self):
        entries = [
            make_list("z1", "Zeta"),
            make_list("a1", "Alpha"),
            make_list("z2", "Zeta"),
        ]

        result = interleave(entries)

        assert [entry.id for entry in result] == ["z1", "a1", "z2"]

    def test_stable_across_calls(self):
        entries = [make_list(f"l{i}", ["NYT", "Amazon", "Goodreads"][i % 3]) for i in range(10)]
        assert interleave(entries) == interleave(entries)

    def test_no_adjacent_same_source_while_others_remain(self):
        sources = ["NYT"] * 5 + ["Amazon"] * 3 + ["Pulitzer"] * 2
        entries = [make_list(f"l{i}", source) for i, source in enumerate(sources)]

        result = interleave(entries)

        assert len(result) == len(entries)
        assert {entry.id for entry in result} == {entry.id for entry in entries}
        # 只有剩下一个来源之后才允许相邻重复
        for previous, current in zip(result[:6], result[1:7], strict=True):
            assert previous.source != current.source

    def test_empty_input(self):
        assert interleave([]) == []

    def test_custom_key(self):
        items = [make_item("1", author="x"), make_item("2", author="x"), make_item("3", author="y")]
        result = interleave(items, key=lambda item: item.author)
        assert [item.id for item in result] == ["1", "3", "2"]

    def test_interleave_then_flatten_scenario(self):
        """NYT 2 个 + Amazon 2 个书单，交错后每个书单带 1 本书。"""
        lists = [
            make_list("nyt-1", "NYT"),
            make_list("nyt-2", "NYT"),
            make_list("amazon-1", "Amazon"),
            make_list("amazon-2", "Amazon"),
        ]

        result = flatten(interleave(lists), books_per_list=1)

        assert [entry.source for entry in result] == ["NYT", "Amazon", "NYT", "Amazon"]
        assert all(len(entry.books) == 1 for entry in result)


class TestFeedGrouper:
    """FeedGrouper 测试。"""

    def test_partitions_all_items_exactly_once(self, seeded_rng):
        for size in (1, 2, 3, 7, 30, 101):
            grouper = FeedGrouper(rng=seeded_rng)
            items = [make_item(i) for i in range(size)]

            groups = grouper.group(items)

            assert sum(len(group) for group in groups) == size
            assert [item.id for group in groups for item in group.items] == [
                item.id for item in items
            ]
            assert all(1 <= len(group) <= 4 for group in groups)

    def test_incremental_grouping_never_regroups(self, seeded_rng):
        """增长的列表多次 group，已分组的书不会再出现在新组里。"""
        grouper = FeedGrouper(rng=seeded_rng)
        items = [make_item(i) for i in range(30)]

        first = grouper.group(items)
        items += [make_item(i) for i in range(30, 60)]
        second = grouper.group(items)
        third = grouper.group(items)

        first_ids = {item.id for group in first for item in group.items}
        second_ids = {item.id for group in second for item in group.items}
        assert first_ids.isdisjoint(second_ids)
        assert len(first_ids) + len(second_ids) == 60
        assert third == []
        assert grouper.used_count == 60
        assert len(grouper.groups) == len(first) + len(second)

    def test_remainder_is_flushed(self):
        """剩余条目不足抽中大小时仍组成一个较小的组。"""
        grouper = FeedGrouper(min_size=4, max_size=4, rng=random.Random(0))

        groups = grouper.group([make_item(i) for i in range(6)])

        assert [len(group) for group in groups] == [4, 2]

    def test_shrinking_stream_rejected(self, seeded_rng):
        grouper = FeedGrouper(rng=seeded_rng)
        grouper.group([make_item(i) for i in range(5)])

        with pytest.raises(ValidationError):
            grouper.group([make_item(i) for i in range(3)])

    def test_reset(self, seeded_rng):
        grouper = FeedGrouper(rng=seeded_rng)
        grouper.group([make_item(i) for i in range(5)])

        grouper.reset()

        assert grouper.used_count == 0
        assert grouper.groups == []

    @pytest.mark.parametrize("bounds", [(0, 4), (3, 2)])
    def test_invalid_bounds(self, bounds):
        with pytest.raises(ValidationError):
            FeedGrouper(min_size=bounds[0], max_size=bounds[1])

    def test_empty_group_rejected(self):
        with pytest.raises(ValueError):
            FeedGroup(items=())


class TestWeightedSample:
    """weighted_sample 测试。"""

    def test_rating_weight_formula(self):
        assert rating_weight(5.0) == pytest.approx(9.0)
        assert rating_weight(3.0) == pytest.approx(1.0)
        assert rating_weight(1.0) == pytest.approx(0.25)
        # 缺失评分按 3.0 处理
        assert rating_weight(None) == pytest.approx(1.0)

    def test_rating_weight_is_configurable(self):
        assert rating_weight(4.0, offset=1.0, floor=0.1, exponent=1.0) == pytest.approx(3.0)
        assert rating_weight(None, default_rating=5.0) == pytest.approx(9.0)

    def test_count_exceeding_pool_returns_pool(self, seeded_rng):
        pool = [make_item(i) for i in range(3)]
        assert weighted_sample(pool, 10, seeded_rng) == pool

    def test_non_positive_count(self, seeded_rng):
        pool = [make_item(i) for i in range(3)]
        assert weighted_sample(pool, 0, seeded_rng) == []
        assert weighted_sample(pool, -1, seeded_rng) == []

    def test_without_replacement(self, seeded_rng):
        pool = [make_item(i, rating=1.0 + (i % 5)) for i in range(30)]

        result = weighted_sample(pool, 10, seeded_rng)

        assert len(result) == 10
        assert len({item.id for item in result}) == 10
        assert {item.id for item in result} <= {item.id for item in pool}

    def test_biased_towards_high_rating(self):
        """9 本 3 星 + 1 本 5 星，抽 2 本时 5 星书在多数试验中被选中。"""
        rng = random.Random(7)
        pool = [make_item(f"three-{i}", rating=3.0) for i in range(9)]
        pool.append(make_item("five", rating=5.0))

        trials = 2000
        hits = sum(
            1
            for _ in range(trials)
            if any(item.id == "five" for item in weighted_sample(pool, 2, rng))
        )

        assert hits > trials / 2

    def test_non_finite_rating_uses_default_weight(self):
        assert rating_weight(float("nan")) == pytest.approx(1.0)
        assert rating_weight(float("inf")) == pytest.approx(1.0)

    def test_nan_rating_keeps_sampling_random(self):
        rng = random.Random(3)
        pool = [make_item(f"three-{i}", rating=3.0) for i in range(9)]
        pool.append(make_item("five", rating=5.0))
        # 绕过校验，模拟未经解析的坏数据
        pool.append(make_item("bad").model_copy(update={"rating": float("nan")}))

        picks = {
            tuple(item.id for item in weighted_sample(pool, 3, rng)) for _ in range(200)
        }

        assert len(picks) > 1


def test_shuffled_does_not_mutate_input(seeded_rng):
    items = [make_item(i) for i in range(10)]
    original = list(items)

    result = shuffled(items, seeded_rng)

    assert items == original
    assert sorted(item.id for item in result) == sorted(item.id for item in items)
