"""
应用启动前检查脚本

在应用外壳启动前检查订阅服务商 API 是否可达。
主要用于容器环境，网络尚未就绪时避免启动后首次加载商品目录就失败。

只用于启动阶段；用户发起的操作失败时从不自动重试。
"""
import logging

import httpx
from tenacity import (
    after_log,
    before_log,
    retry,
    stop_after_attempt,
    wait_fixed,
)

from froth.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 最多尝试 5 分钟，每秒一次
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def init(base_url: str, transport: httpx.BaseTransport | None = None) -> None:
    """
    检查服务商 API 是否可达

    任何 HTTP 响应（包括 401 / 404）都说明网络已通；只有连接层错误才会触发重试。

    Raises:
        httpx.HTTPError: 连接失败时，触发 tenacity 重试
    """
    try:
        with httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=transport) as client:
            client.get(base_url)
    except httpx.HTTPError as e:
        logger.error(e)
        raise e


def main() -> None:
    logger.info("Initializing service")
    init(settings.REVENUECAT_BASE_URL)
    logger.info("Service finished initializing")


if __name__ == "__main__":  # pragma: no cover
    main()
