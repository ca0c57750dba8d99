"""台账服务启动入口（在 backend 目录下运行：python main.py）"""
import os

import uvicorn

from wms.core.config import settings

# 以脚本所在目录为工作目录，数据库与日志的相对路径都从这里算起
os.chdir(os.path.dirname(os.path.abspath(__file__)))

if __name__ == "__main__":
    uvicorn.run(
        "wms.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
    )
