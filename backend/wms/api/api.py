"""API 路由聚合 - 单机版（无认证）"""
from fastapi import APIRouter

from wms.api.endpoints import alerts, documents, stocks

api_router = APIRouter()

api_router.include_router(documents.router, prefix="/documents", tags=["单据管理"])
api_router.include_router(stocks.router, prefix="/stocks", tags=["库存查询"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["库存预警"])
