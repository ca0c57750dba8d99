"""
定时任务调度器服务
使用 APScheduler 定时扫描库存预警
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from wms.core.config import settings
from wms.core.exceptions import InventoryError
from wms.models.enums import AlertLevel

logger = logging.getLogger(__name__)

# 全局调度器实例
scheduler: Optional[AsyncIOScheduler] = None


async def scan_stock_alerts(service=None) -> dict:
    """执行一次库存预警扫描，返回各级别物料数"""
    if service is None:
        from wms.services.inventory_service import InventoryService
        service = InventoryService()

    try:
        levels = await service.scan_alerts()
    except InventoryError as e:
        logger.error(f"❌ 库存预警扫描失败: [{e.code}] {e.message}")
        return {}

    summary = {level.value: 0 for level in AlertLevel}
    for level in levels.values():
        summary[level.value] += 1
    logger.info(
        f"🔔 库存预警扫描完成: 共 {len(levels)} 个物料，"
        f"低于下限 {summary[AlertLevel.BELOW_MIN.value]}，高于上限 {summary[AlertLevel.ABOVE_MAX.value]}"
    )
    return summary


def init_scheduler(service=None):
    """初始化并启动调度器"""
    global scheduler

    if not settings.STOCK_ALERT_SCAN_ENABLED:
        logger.info("🔕 库存预警扫描已禁用")
        return

    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        scan_stock_alerts,
        trigger=IntervalTrigger(minutes=settings.STOCK_ALERT_SCAN_MINUTES),
        kwargs={"service": service},
        id="stock_alert_scan",
        name="库存预警扫描",
        replace_existing=True
    )

    scheduler.start()
    logger.info(f"⏰ 定时任务调度器已启动 - 库存预警扫描间隔: {settings.STOCK_ALERT_SCAN_MINUTES} 分钟")


def shutdown_scheduler():
    """关闭调度器"""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ 定时任务调度器已关闭")


def get_scheduler_status() -> dict:
    """获取调度器状态"""
    if not scheduler:
        return {
            "enabled": settings.STOCK_ALERT_SCAN_ENABLED,
            "running": False,
            "jobs": []
        }

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "enabled": settings.STOCK_ALERT_SCAN_ENABLED,
        "running": scheduler.running,
        "jobs": jobs
    }
