# utils.py

import os
import json
import re
import logging
from base64 import b64encode
from pathlib import Path
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass, field

import requests
from dotenv import load_dotenv, find_dotenv

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE = "seo_machine.log"


def configure_logging(level: Union[int, str] = "INFO", log_dir: Union[str, Path, None] = "logs") -> logging.Logger:
    """
    Attach console and file handlers to the "seo_machine" logger.
    Repeat calls are no-ops; log_dir=None keeps output on the console.
    """
    pkg_logger = logging.getLogger("seo_machine")
    if pkg_logger.handlers:
        return pkg_logger
    pkg_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    if log_dir is not None:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(Path(log_dir) / LOG_FILE, encoding="utf-8")
            file_handler.setFormatter(formatter)
            pkg_logger.addHandler(file_handler)
        except OSError as e:
            logger.warning("File logging disabled (%s)", e)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    pkg_logger.addHandler(console)
    return pkg_logger


# ---------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------
_HTML_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_ZERO_WIDTH_RE = re.compile("[\u200b\u200c\u200d\u200e\u200f\u2060\ufeff]")

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.S)
_LINE_COMMENT_RE = re.compile(r"^\s*//.*$", re.M)
_DANGLING_COMMA_RE = re.compile(r",(\s*[}\]])")

_ESCAPED_DOLLAR = "\uffffDOLLAR\uffff"

USER_AGENT = "SeoMachine/1.0"

KNOWN_SECTIONS = (
    "readability",
    "seo_guidelines",
    "keyword_analysis",
    "content_length",
    "google_analytics",
    "google_search_console",
    "dataforseo",
    "ahrefs",
    "aggregator",
)


@dataclass
class SettingsOptions:
    path: str = "config/settings.json"
    # ${VAR:default} or $VAR
    placeholder_pattern: str = r"\$\{([^}:]+)(?::([^}]*))?\}|\$([^\W\d]\w*)"
    max_passes: int = 5
    known_sections: tuple = field(default=KNOWN_SECTIONS)


class SettingsLoader:
    """
    Reads config/settings.json (JSON or JSONC) and expands ${ENV} placeholders.

    Each analyzer and data-source client takes the resulting dict as
    `app_settings` and reads its own section from it.
    """

    def __init__(self, options: Optional[SettingsOptions] = None):
        self.options = options or SettingsOptions()
        self._placeholder_re = re.compile(self.options.placeholder_pattern)

    # ----------------------- Placeholders ---------------------------------
    def _expand_string(self, text: str) -> str:
        expanded = text.replace("\\$", _ESCAPED_DOLLAR).replace("$$", _ESCAPED_DOLLAR)

        def lookup(match: re.Match) -> str:
            name = match.group(1) or match.group(3)
            value = os.getenv(name)
            if value is None:
                return match.group(2) or ""
            # env values are substituted verbatim
            return value.replace("$", _ESCAPED_DOLLAR)

        for _ in range(self.options.max_passes):
            replaced = self._placeholder_re.sub(lookup, expanded)
            if replaced == expanded:
                break
            expanded = replaced

        return expanded.replace(_ESCAPED_DOLLAR, "$")

    def resolve_env_vars(self, obj: Any) -> Any:
        if isinstance(obj, dict):
            return {key: self.resolve_env_vars(value) for key, value in obj.items()}
        if isinstance(obj, list):
            return [self.resolve_env_vars(item) for item in obj]
        if isinstance(obj, str):
            return self._expand_string(obj)
        return obj

    # ----------------------- Parsing --------------------------------------
    @staticmethod
    def _relax(text: str) -> str:
        """Drop a BOM, comments and dangling commas so json.loads accepts JSONC."""
        text = text.lstrip("\ufeff")
        text = _LINE_COMMENT_RE.sub("", _BLOCK_COMMENT_RE.sub("", text))
        previous = None
        while previous != text:
            previous, text = text, _DANGLING_COMMA_RE.sub(r"\1", text)
        return text

    @staticmethod
    def _excerpt(text: str, pos: int, radius: int = 3) -> str:
        lines = text.splitlines()
        line_no = text.count("\n", 0, pos)
        column = pos - (text.rfind("\n", 0, pos) + 1)
        out = []
        for i in range(max(0, line_no - radius), min(len(lines), line_no + radius + 1)):
            out.append(f"{i + 1:4d}  {lines[i]}")
            if i == line_no:
                out.append(" " * (6 + column) + "^")
        return "\n".join(out)

    def load_config(self, config_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Parse a settings file as strict JSON, falling back to JSONC.
        Raises FileNotFoundError, ValueError (with a caret excerpt) or
        TypeError when the top level is not an object.
        """
        path = Path(config_path).resolve()
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")

        raw = path.read_text(encoding="utf-8")
        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError:
            relaxed = self._relax(raw)
            try:
                data = json.loads(relaxed)
            except json.JSONDecodeError as e:
                msg = (
                    f"Invalid JSON in config file {path}: {e.msg} at line {e.lineno} column {e.colno}\n"
                    f"{self._excerpt(relaxed, e.pos)}"
                )
                logger.error(msg)
                raise ValueError(msg) from e
            logger.debug("Parsed %s as JSONC.", path)

        if not isinstance(data, dict):
            raise TypeError("Config file must contain a JSON object.")

        unknown = sorted(set(data) - set(self.options.known_sections))
        if unknown:
            logger.warning("Settings sections not used by seo_machine: %s", ", ".join(unknown))
        return self.resolve_env_vars(data)

    def load_settings(self, config_path: Union[str, Path, None] = None) -> Dict[str, Any]:
        """Load .env, then the settings file; a missing file means env-only ({})."""
        load_dotenv(find_dotenv(usecwd=True))
        path = Path(config_path or self.options.path)
        if not path.is_file():
            logger.debug("No settings file at %s; using environment only.", path)
            return {}
        return self.load_config(path)


_loader = SettingsLoader()


def resolve_env_vars(obj: Any) -> Any:
    return _loader.resolve_env_vars(obj)


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    return _loader.load_config(config_path)


def load_settings(config_path: Union[str, Path, None] = None) -> Dict[str, Any]:
    return _loader.load_settings(config_path)


# ---------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------
def strip_html(text_or_html: str) -> str:
    """Tag stripper for SERP titles and snippets."""
    if not text_or_html:
        return ""
    text = _HTML_TAG_RE.sub(" ", text_or_html).replace("&nbsp;", " ")
    return _WS_RE.sub(" ", text).strip()


def remove_zero_width(s: str) -> str:
    if not s:
        return s
    return _ZERO_WIDTH_RE.sub("", s)


def section(app_settings: Optional[Dict[str, Any]], name: str) -> Dict[str, Any]:
    """One settings section as a dict (never None)."""
    return dict((app_settings or {}).get(name, {}) or {})


def first_set(*values: Any) -> Any:
    """First value that is not None or "", else None."""
    for v in values:
        if v not in (None, ""):
            return v
    return None


def safe_json(resp: requests.Response) -> Optional[Any]:
    try:
        return resp.json()
    except ValueError:
        return None


# ---------------------------------------------------------------------
# Auth headers
# ---------------------------------------------------------------------
def get_auth_header(config: Dict[str, Any]) -> Dict[str, str]:
    """
    Authorization header for a data source.

      basic (default): 'username'/'password', or the env vars named by
                       'username_env_var'/'password_env_var'
      bearer:          'token', or the env var named by 'token_env_var'
    """
    config = config or {}

    if config.get("auth_type", "basic").lower() == "bearer":
        token_env_var = config.get("token_env_var", "API_TOKEN")
        token = config.get("token") or os.getenv(token_env_var)
        if not token:
            raise EnvironmentError(f"Missing bearer token. Set '{token_env_var}' env var or 'token' in config.")
        return {"Authorization": f"Bearer {token}", "Accept": "application/json", "User-Agent": USER_AGENT}

    username_env_var = config.get("username_env_var", "API_LOGIN")
    password_env_var = config.get("password_env_var", "API_PASSWORD")
    username = config.get("username") or os.getenv(username_env_var)
    password = config.get("password") or os.getenv(password_env_var)
    if not username or not password:
        raise EnvironmentError(
            f"Missing credentials. Provide 'username'/'password' or set "
            f"'{username_env_var}' and '{password_env_var}' env vars."
        )

    encoded = b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {encoded}", "Content-Type": "application/json", "User-Agent": USER_AGENT}
