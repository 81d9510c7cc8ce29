# segvis - src/segvis/utils/logger.py
# (C) 2025 MUSE Corp. All rights reserved.

import logging
import os

LOG_LEVEL_ENV_VAR = "SEGVIS_LOG_LEVEL"


def _default_level():
    name = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def get_logger(name, level=None):
    """
    segvis 모듈용 콘솔 로거를 반환합니다.
    레벨은 인자 > SEGVIS_LOG_LEVEL 환경변수 > INFO 순으로 결정되고,
    핸들러는 로거당 한 번만 붙습니다.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(level if level is not None else _default_level())

        # 콘솔 핸들러
        ch = logging.StreamHandler()

        # 포맷 설정
        formatter = logging.Formatter('[%(asctime)s] [%(levelname)s] %(message)s', datefmt='%H:%M:%S')
        ch.setFormatter(formatter)

        logger.addHandler(ch)

    return logger
