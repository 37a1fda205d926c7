"""Catalog module infrastructure dependencies."""

from src.modules.catalog.infrastructure.catalog_client import CatalogApiClient

# 全局目录服务客户端实例（连接池在应用关闭时释放）
catalog_client = CatalogApiClient()


def get_catalog_client() -> CatalogApiClient:
    """获取目录服务客户端依赖。"""
    return catalog_client
