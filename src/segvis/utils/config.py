# segvis - config.py
# (C) 2025 MUSE Corp. All rights reserved.
# Role: Visualization Config (JSON, defaults merged with saved values)

import os
import json
import copy

from segvis.utils.logger import get_logger

logger = get_logger("segvis.config")

BACKEND_ENV_VAR = "SEGVIS_BACKEND"

DEFAULT_CONFIG = {
    # 업샘플링 필터: "point" | "linear"
    "filter_mode": "linear",
    # 출력 종류: "overlay", "mask", "overlay|mask"
    "visualize": "overlay|mask",
    # 명시적 알파가 없는 클래스에 적용할 블렌딩 알파 (0~255)
    "overlay_alpha": 150.0,
    # 클래스 색상 / 라벨 파일 (없으면 자동 생성 팔레트)
    "colors_path": None,
    "labels_path": None,
    "num_classes": 21,
    # 매팅 합성 배경색 (RGB, 0~255)
    "matte_background": [120, 255, 155],
    # "auto" | "cuda" | "cpu"
    "backend": "auto",
}


class SegVisConfig:
    def __init__(self, path=None, **overrides):
        self.path = path
        self.values = copy.deepcopy(DEFAULT_CONFIG)

        if path is not None:
            self.load(path)

        self.values.update(overrides)

        env_backend = os.environ.get(BACKEND_ENV_VAR)
        if env_backend:
            self.values["backend"] = env_backend.strip().lower()

    def load(self, path):
        """Merge a JSON file over the defaults. A broken file keeps the defaults."""
        if not os.path.exists(path):
            return False
        try:
            with open(path, 'r') as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"config load failed ({path}): {e}")
            return False

        if not isinstance(loaded, dict):
            logger.warning(f"config load failed ({path}): top level is not an object")
            return False

        for k, v in loaded.items():
            if k not in DEFAULT_CONFIG:
                logger.warning(f"config ({path}): ignoring unknown key '{k}'")
                continue
            self.values[k] = v
        return True

    def save(self, path=None):
        path = path or self.path
        if path is None:
            raise ValueError("no config path to save to")
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.values, f, indent=4)
        self.path = path

    def get(self, key, default=None):
        return self.values.get(key, default)

    def __getitem__(self, key):
        return self.values[key]

    def __setitem__(self, key, value):
        if key not in DEFAULT_CONFIG:
            raise KeyError(key)
        self.values[key] = value

    @property
    def matte_background(self):
        return tuple(float(c) for c in self.values["matte_background"])
