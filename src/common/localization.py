# src/common/localization.py
"""
Модуль локализации.
Тексты push-уведомлений хранятся в config/lang_dict.json.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any


DEFAULT_LANGUAGE = "en"


def get_lang_dict_path() -> Path:
    """Возвращает путь к файлу локализации."""
    return Path(__file__).parent.parent.parent / "config" / "lang_dict.json"


@lru_cache()
def load_lang_dict() -> dict[str, dict[str, str]]:
    """
    Загружает словарь локализации из JSON файла (с кэшированием).

    Raises:
        FileNotFoundError: Если файла нет
    """
    lang_path = get_lang_dict_path()
    if not lang_path.exists():
        raise FileNotFoundError(f"Файл локализации не найден: {lang_path}")

    with open(lang_path, "r", encoding="utf-8") as f:
        return json.load(f)


def get_text(
    key: str,
    lang: str = DEFAULT_LANGUAGE,
    default: str | None = None,
    **kwargs: Any,
) -> str:
    """
    Получает локализованный текст по ключу.

    Порядок fallback: запрошенный язык -> английский -> первый доступный перевод.

    Example:
        >>> get_text("LOCATION_UPDATE_TITLE", "en", name="Ravi")
        "Ravi Location Update"
    """
    try:
        lang_dict = load_lang_dict()
    except FileNotFoundError:
        return default or f"[{key}]"

    translations = lang_dict.get(key)
    if not translations:
        return default or f"[{key}]"

    text = translations.get(lang) or translations.get(DEFAULT_LANGUAGE)
    if not text:
        text = next(iter(translations.values()), f"[{key}]")

    if kwargs:
        try:
            text = text.format(**kwargs)
        except KeyError:
            pass  # Отсутствующие плейсхолдеры оставляем как есть

    return text


def get_available_languages() -> list[str]:
    """Возвращает список языков из первого ключа словаря."""
    try:
        lang_dict = load_lang_dict()
    except FileNotFoundError:
        return [DEFAULT_LANGUAGE]
    first_key = next(iter(lang_dict.values()), {})
    return list(first_key.keys())
