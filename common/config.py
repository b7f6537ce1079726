"""
YAML 설정 로드

config/ 디렉토리의 설정 파일들을 읽어 하나의 dict로 병합합니다.
각 파일은 최상위 키(databases, scheduler, admin, logging)를 하나씩 담당합니다.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"
CONFIG_FILES = ("database.yaml", "scheduler.yaml", "admin.yaml")


def load_config(config_dir: str | Path | None = None, files: tuple[str, ...] = CONFIG_FILES) -> dict[str, Any]:
    """
    설정 파일 로드 및 병합

    Args:
        config_dir: 설정 디렉토리 (None이면 SCHEDJOB_CONFIG_DIR 환경변수, 없으면 ./config)
        files: 읽을 파일 이름 목록 (없는 파일은 건너뜀)

    Returns:
        병합된 설정 dict
    """
    config_path = Path(config_dir or os.environ.get("SCHEDJOB_CONFIG_DIR") or DEFAULT_CONFIG_DIR)
    config: dict[str, Any] = {}

    for name in files:
        file_path = config_path / name
        if not file_path.exists():
            logger.warning(f"Config file not found, skipping: {file_path}")
            continue

        with open(file_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        config = merge(config, loaded)

    return config


def merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """중첩 dict 병합 (override 우선)"""
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge(result[key], value)
        else:
            result[key] = value
    return result
