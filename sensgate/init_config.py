"""
首次启动时生成敏感词过滤所需的配置文件：config 目录缺少词表或拦截文案时写入默认内容，
已有文件不覆盖。可在应用 startup 时调用，也可单独执行：python -m sensgate.init_config
"""

from __future__ import annotations

from sensgate.config.sensitive import TermStore
from sensgate.util.logger import logger


def ensure_config_dir(term_store: TermStore | None = None) -> TermStore:
    store = term_store or TermStore.from_settings()
    store.ensure_files()
    logger.info(
        "init_config: sensitive filter files words=%s response=%s",
        store.words_file,
        store.response_file,
    )
    return store


def main() -> None:
    """命令行或 one-off 容器执行时调用。"""
    ensure_config_dir()


if __name__ == "__main__":
    main()
