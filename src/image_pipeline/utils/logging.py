"""日志配置。"""

from __future__ import annotations

import logging


def setup_logging(level: int = logging.INFO, *, verbose: bool = False) -> None:
    """初始化项目日志配置；verbose 时输出 DEBUG 级别。"""

    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(asctime)s [%(processName)s] %(levelname)s %(name)s: %(message)s",
    )
    # Pillow 的插件加载日志过于冗长
    logging.getLogger("PIL").setLevel(logging.WARNING)
