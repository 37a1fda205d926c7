#!/usr/bin/env python
"""在终端预览商城首页 Feed。

直接调用目录服务组装一次首页，按屏幕顺序打印分区与混排组。

用法:
    uv run python scripts/preview_feed.py [--pages 2] [--seed 42] [--json]
"""

import argparse
import asyncio
import json
import random
import sys
from pathlib import Path


def _ensure_project_root_on_path() -> None:
    """确保项目根目录在 Python 路径中，便于直接运行脚本。"""
    project_root = Path(__file__).parent.parent
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_path()


def _describe_section(section) -> str:
    if section.items:
        return ", ".join(item.title for item in section.items[:5])
    if section.lists_with_books:
        return ", ".join(
            f"{entry.source}:{entry.curated_list.title}({len(entry.books)})"
            for entry in section.lists_with_books[:5]
        )
    if section.rankings:
        return ", ".join(
            f"#{entry.rank} {entry.source} {entry.item.title}"
            for entry in section.rankings[:5]
        )
    return ", ".join(f"{c.source}:{c.title}" for c in section.lists[:5])


async def preview(pages: int, seed: int | None) -> dict:
    """加载首页并额外加载 pages-1 页。"""
    from loguru import logger

    from src.core.config import settings
    from src.core.infrastructure.logging import setup_logging
    from src.modules.catalog.infrastructure.catalog_client import CatalogApiClient
    from src.modules.feed.application.orchestrator import FeedOrchestrator
    from src.modules.feed.domain.pagination import LoadMoreGuard

    setup_logging()
    client = CatalogApiClient()
    orchestrator = FeedOrchestrator(
        client,
        rng=random.Random(seed) if seed is not None else None,
        # 脚本按顺序加载，不需要冷却
        guard=LoadMoreGuard(cooldown_sec=0),
    )
    try:
        screen = await orchestrator.load_home()
        for _ in range(pages - 1):
            result = await orchestrator.load_more()
            if not result.loaded:
                logger.info(f"Stopped loading more: {result.reason}")
                break

        blocks = []
        for block in screen.blocks():
            if block.section is not None:
                blocks.append(
                    {
                        "type": "section",
                        "key": block.section.key,
                        "title": block.section.title,
                        "preview": _describe_section(block.section),
                    }
                )
            elif block.group is not None:
                blocks.append(
                    {
                        "type": "group",
                        "titles": [item.title for item in block.group.items],
                    }
                )

        return {
            "catalog": settings.CATALOG_API_BASE_URL,
            "cursor": {
                "offset": screen.cursor.offset,
                "total": screen.cursor.total,
                "has_more": screen.cursor.has_more,
            },
            "failed_sources": screen.failed_sources,
            "blocks": blocks,
        }
    finally:
        await orchestrator.close()
        await client.aclose()


def print_preview(result: dict) -> None:
    print(f"\n{'=' * 60}")
    print(f"Store feed preview - {result['catalog']}")
    print(f"{'=' * 60}")

    for block in result["blocks"]:
        if block["type"] == "section":
            print(f"\n[{block['key']}] {block['title']}")
            print(f"    {block['preview']}")
        else:
            print(f"  · {' | '.join(block['titles'])}")

    cursor = result["cursor"]
    print(f"\n{'-' * 40}")
    print(f"Loaded {cursor['offset']}/{cursor['total']} books, has_more={cursor['has_more']}")
    if result["failed_sources"]:
        print(f"Failed sources: {', '.join(result['failed_sources'])}")
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description="预览商城首页 Feed")
    parser.add_argument("--pages", type=int, default=1, help="加载的书籍页数")
    parser.add_argument("--seed", type=int, default=None, help="随机种子（复现分组与抽样）")
    parser.add_argument("--json", action="store_true", help="输出 JSON 格式")
    args = parser.parse_args()

    result = asyncio.run(preview(max(1, args.pages), args.seed))
    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print_preview(result)


if __name__ == "__main__":
    main()
