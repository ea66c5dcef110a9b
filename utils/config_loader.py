from __future__ import annotations

import json
import os
import sys
from copy import deepcopy
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from core.default_config import default_config_copy

ENV_CONFIG_JSON = "FAIS_CONFIG_JSON"
ENV_CONFIG_PATH = "FAIS_CONFIG_PATH"


def load_config(base_path: str | Path, *, custom_name: str = "custom.yml") -> dict[str, Any]:
    """
    Build the effective configuration.

    Layers, later ones winning:
    1. Built-in defaults from core.default_config.
    2. FAIS_CONFIG_JSON (inline JSON) or FAIS_CONFIG_PATH (a file).
    3. The base config file (config.yml/config.json) when present.
    4. Custom overrides (custom.yml/custom.json) next to the base file or the working directory.
    """
    config = default_config_copy()

    env_json = os.environ.get(ENV_CONFIG_JSON)
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_json:
        config = deep_merge(config, json.loads(env_json))
    elif env_path:
        path = Path(env_path)
        if not path.exists():
            raise FileNotFoundError(f"Environment config path '{env_path}' not found.")
        config = deep_merge(config, read_config_file(path))

    base_file = _find_file(Path(base_path))
    base_dir = None
    if base_file:
        config = deep_merge(config, read_config_file(base_file))
        base_dir = base_file.parent

    custom_file = _find_file(Path(custom_name), extra_dirs=_candidate_dirs(base_dir))
    if custom_file:
        config = deep_merge(config, read_config_file(custom_file))

    return config


def deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = deepcopy(dict(base))
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def read_config_file(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix in {".yml", ".yaml"}:
        data = parse_yaml(text) or {}
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ValueError(f"Unsupported config format: {path}")
    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration file {path} must contain a mapping.")
    return data


def dump_config(path: Path, data: Mapping[str, Any]) -> None:
    path = Path(path)
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix in {".yml", ".yaml"}:
        path.write_text("\n".join(_yaml_lines(data, 0)) + "\n", encoding="utf-8")
    elif suffix == ".json":
        path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    else:
        raise ValueError(f"Unsupported config format: {path}")


def _candidate_dirs(base_dir: Optional[Path]) -> list[Path]:
    dirs = [base_dir] if base_dir else []
    dirs.append(Path(sys.argv[0]).resolve().parent)
    dirs.append(Path.cwd())
    return dirs


def _sibling_formats(path: Path) -> list[Path]:
    suffix = path.suffix.lower()
    stem = path.with_suffix("")
    if suffix == ".json":
        return [stem.with_suffix(".yml"), stem.with_suffix(".yaml")]
    if suffix in {".yml", ".yaml"}:
        return [stem.with_suffix(".json")]
    return []


def _find_file(path: Path, *, extra_dirs: Iterable[Path] = ()) -> Optional[Path]:
    candidates = [path, *_sibling_formats(path)]
    for directory in extra_dirs:
        candidate = directory / path.name
        candidates.append(candidate)
        candidates.extend(_sibling_formats(candidate))

    seen: set[Path] = set()
    for candidate in candidates:
        try:
            key = candidate.resolve()
        except OSError:
            key = candidate
        if key in seen:
            continue
        seen.add(key)
        if candidate.is_file():
            return candidate
    return None


# A deliberately small YAML reader: nested mappings, "- " lists of scalars or
# mappings, and inline JSON values. Config files never need more than that.

def parse_yaml(text: str) -> Any:
    root: dict[str, Any] = {}
    # (indent, container, parent container, key in parent)
    stack: list[tuple[int, Any, Any, Any]] = [(-1, root, None, None)]

    for raw_line in text.splitlines():
        line = _strip_comment(raw_line).rstrip()
        stripped = line.lstrip()
        if not stripped:
            continue
        indent = len(line) - len(stripped)
        while indent <= stack[-1][0]:
            stack.pop()
        _, container, parent, parent_key = stack[-1]

        if stripped == "-" or stripped.startswith("- "):
            if isinstance(container, dict):
                if container or parent is None:
                    raise ValueError(f"Unexpected list item: {raw_line!r}")
                container = []
                parent[parent_key] = container
                stack[-1] = (stack[-1][0], container, parent, parent_key)
            item_text = stripped[1:].strip()
            if not item_text:
                item: dict[str, Any] = {}
                container.append(item)
                stack.append((indent, item, container, len(container) - 1))
            elif _is_mapping_line(item_text):
                item = {}
                container.append(item)
                key, value = _split_pair(item_text)
                stack.append((indent, item, container, len(container) - 1))
                if value is None:
                    child: dict[str, Any] = {}
                    item[key] = child
                    stack.append((indent + 2, child, item, key))
                else:
                    item[key] = value
            else:
                container.append(_parse_scalar(item_text))
            continue

        if not _is_mapping_line(stripped) or not isinstance(container, dict):
            raise ValueError(f"Unsupported YAML line: {raw_line!r}")
        key, value = _split_pair(stripped)
        if value is None:
            child = {}
            container[key] = child
            stack.append((indent, child, container, key))
        else:
            container[key] = value
    return root


def _strip_comment(line: str) -> str:
    in_quote = None
    for index, char in enumerate(line):
        if char in "\"'":
            if in_quote == char:
                in_quote = None
            elif in_quote is None:
                in_quote = char
        elif char == "#" and in_quote is None and (index == 0 or line[index - 1].isspace()):
            return line[:index]
    return line


def _is_mapping_line(text: str) -> bool:
    if text[0] in "\"'[{":
        return False
    head, sep, tail = text.partition(":")
    return bool(sep) and bool(head.strip()) and (not tail or tail[0] == " ")


def _split_pair(text: str) -> tuple[str, Any]:
    key, _, value_text = text.partition(":")
    value_text = value_text.strip()
    return key.strip(), (_parse_scalar(value_text) if value_text else None)


def _parse_scalar(value: str) -> Any:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value[1:-1]
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in {"null", "~"}:
        return None
    if value[0] in "[{":
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _yaml_lines(value: Any, indent: int) -> list[str]:
    prefix = " " * indent
    lines: list[str] = []
    if isinstance(value, Mapping):
        for key, val in value.items():
            if isinstance(val, (Mapping, list)) and val:
                lines.append(f"{prefix}{key}:")
                lines.extend(_yaml_lines(val, indent + 2))
            else:
                lines.append(f"{prefix}{key}: {_format_scalar(val)}")
    else:
        for item in value:
            if isinstance(item, Mapping) and item:
                lines.append(f"{prefix}-")
                lines.extend(_yaml_lines(item, indent + 2))
            else:
                lines.append(f"{prefix}- {_format_scalar(item)}")
    return lines


def _format_scalar(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    text = str(value)
    if not text or any(ch in text for ch in ":#{}[]\"'") or text.strip() != text or " " in text:
        return json.dumps(text, ensure_ascii=False)
    return text
