import copy
import os
import yaml

DEFAULT_CONFIG = {
    "system": {
        "socket_path": f"/tmp/gallery_{os.getenv('USER', 'user')}.sock",
        "request_timeout": 180.0,
    },
    "scan": {
        "image_extensions": ["jpg", "jpeg", "png", "gif", "webp", "bmp", "tiff", "tif", "svg"],
    },
    "inference": {
        "endpoint": "http://localhost:11434/api/generate",
        "model": "moondream",
        "prompt": (
            "List 5-10 descriptive tags for this image. Output only the tags separated by commas, "
            "nothing else. Example: nature, sunset, mountain, peaceful, orange sky"
        ),
        "timeout": 120,
        "max_image_edge": 1024,
    },
    "logging_level": "INFO",
    "gui": {
        "background_color": "#09090b",
        "thumbnail_size": 256,
        "window_title": "Gallery",
    },
    "hotkeys": {
        "close_image": {
            "sequence": "Esc",
            "description": "Close the fullscreen view"
        },
        "next_image": {
            "sequence": "Right",
            "description": "Navigate to next image"
        },
        "previous_image": {
            "sequence": "Left",
            "description": "Navigate to previous image"
        },
    },
}


def _default_config_path() -> str:
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return os.path.join(xdg_config_home, "gallery", "config.yaml")


def _deep_merge(base: dict, override: dict) -> dict:
    # Copy so set() never writes through to DEFAULT_CONFIG.
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class ConfigManager:
    def __init__(self, config_path: str | None = None):
        self.config_path = config_path or _default_config_path()
        self.config = self.load_config()

    def load_config(self) -> dict:
        try:
            with open(self.config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            self.save_config(DEFAULT_CONFIG)
            return _deep_merge(DEFAULT_CONFIG, {})
        except yaml.YAMLError as exc:
            raise ValueError(f"Malformed config at {self.config_path}") from exc
        if not isinstance(user_config, dict):
            raise ValueError(f"Config at {self.config_path} must be a mapping")
        return _deep_merge(DEFAULT_CONFIG, user_config)

    def save_config(self, config: dict):
        os.makedirs(os.path.dirname(self.config_path), exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.safe_dump(config, f, default_flow_style=False)

    def get(self, key, default=None):
        keys = key.split('.')
        value = self.config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
        return value if value is not None else default

    def set(self, key, value):
        keys = key.split('.')
        node = self.config
        for k in keys[:-1]:
            node = node.setdefault(k, {})
        node[keys[-1]] = value
        self.save_config(self.config)

    @property
    def logging_level(self) -> str:
        return self.get("logging_level", "INFO")
