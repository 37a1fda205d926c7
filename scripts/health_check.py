#!/usr/bin/env python3
"""健康检查脚本。

检查目录服务与各内容源是否可用。
可作为运维脚本或监控探针使用。

使用方式：
    # 完整健康检查（目录服务 + 每个内容源抓取 1 条）
    python scripts/health_check.py

    # 只检查特定组件
    python scripts/health_check.py --component catalog
    python scripts/health_check.py --component sources

    # JSON 输出
    python scripts/health_check.py --json

    # 退出码检查（用于 CI/CD）
    python scripts/health_check.py --strict
"""

import argparse
import asyncio
import json
import sys
from datetime import UTC, datetime
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


async def check_catalog() -> dict:
    """检查目录服务健康端点。"""
    from src.modules.catalog.infrastructure.catalog_client import CatalogApiClient

    client = CatalogApiClient()
    try:
        result = await client.check_health()
    finally:
        await client.aclose()

    info = result.to_dict()
    if result.status.value == "ok":
        info["status"] = "healthy"
    elif result.reachable:
        info["status"] = "warning"
    else:
        info["status"] = "unhealthy"
    return info


async def check_sources() -> dict:
    """每个内容源抓取 1 条，统计失败的源。"""
    from src.modules.catalog.domain.source import SourceKind
    from src.modules.catalog.infrastructure.catalog_client import CatalogApiClient

    client = CatalogApiClient()
    try:
        kinds = list(SourceKind)
        pages = await asyncio.gather(*(client.fetch(kind, 1) for kind in kinds))
    finally:
        await client.aclose()

    sources = {
        str(kind): {
            "status": page.status.value,
            "duration_ms": page.duration_ms,
            **({"error": page.error_message} if page.failed else {}),
        }
        for kind, page in zip(kinds, pages, strict=True)
    }
    failed = [name for name, info in sources.items() if info["status"] == "failed"]

    status = "healthy"
    if failed:
        # Feed 在部分源失败时仍可降级运行
        status = "unhealthy" if len(failed) == len(kinds) else "warning"

    return {"status": status, "failed_sources": failed, "sources": sources}


async def run_full_check() -> dict:
    """运行完整健康检查。"""
    results = {
        "timestamp": datetime.now(UTC).isoformat(),
        "overall_status": "healthy",
        "components": {},
    }

    catalog_result, sources_result = await asyncio.gather(
        check_catalog(),
        check_sources(),
        return_exceptions=True,
    )

    for name, result in (("catalog", catalog_result), ("sources", sources_result)):
        results["components"][name] = (
            result
            if not isinstance(result, Exception)
            else {"status": "error", "error": str(result)}
        )

    # 确定整体状态
    statuses = [c.get("status", "unknown") for c in results["components"].values()]

    if any(s in ("unhealthy", "error") for s in statuses):
        results["overall_status"] = "unhealthy"
    elif any(s == "warning" for s in statuses):
        results["overall_status"] = "degraded"

    return results


async def run_component_check(component: str) -> dict:
    """运行单个组件检查。"""
    checkers = {
        "catalog": check_catalog,
        "sources": check_sources,
    }

    if component not in checkers:
        return {"error": f"Unknown component: {component}"}

    result = await checkers[component]()
    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "component": component,
        "result": result,
    }


def _status_emoji(status: str) -> str:
    if status == "healthy":
        return "✅"
    if status in ("warning", "degraded"):
        return "⚠️"
    return "❌"


def print_result(result: dict, json_output: bool = False):
    """打印检查结果。"""
    if json_output:
        print(json.dumps(result, indent=2))
        return

    print(f"\n{'=' * 60}")
    print(f"Health Check Report - {result.get('timestamp', 'N/A')}")
    print(f"{'=' * 60}")

    if "overall_status" in result:
        overall = result["overall_status"]
        print(f"\nOverall Status: {_status_emoji(overall)} {overall.upper()}")

        print(f"\n{'-' * 40}")
        for component, info in result.get("components", {}).items():
            comp_status = info.get("status", "unknown")
            print(f"{_status_emoji(comp_status)} {component}: {comp_status}")

            if comp_status != "healthy":
                for key, value in info.items():
                    if key not in ("status", "sources"):
                        print(f"    {key}: {value}")

    elif "result" in result:
        info = result["result"]
        comp_status = info.get("status", "unknown")
        print(
            f"\n{result.get('component', 'Component')}: "
            f"{_status_emoji(comp_status)} {comp_status}"
        )

        for key, value in info.items():
            if key != "status":
                print(f"  {key}: {value}")

    print(f"\n{'=' * 60}\n")


def main():
    """主函数。"""
    parser = argparse.ArgumentParser(description="商城 Feed 健康检查脚本")
    parser.add_argument(
        "--component",
        "-c",
        type=str,
        choices=["catalog", "sources"],
        help="只检查特定组件",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="输出 JSON 格式",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="严格模式：任何非 healthy 状态都返回非零退出码",
    )

    args = parser.parse_args()

    if args.component:
        result = asyncio.run(run_component_check(args.component))
    else:
        result = asyncio.run(run_full_check())

    print_result(result, args.json)

    # 确定退出码
    if args.strict:
        overall = result.get(
            "overall_status", result.get("result", {}).get("status", "unknown")
        )
        if overall != "healthy":
            sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
