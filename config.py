import os
import yaml
import keyring

APP_VERSION = "1.0.0"


class YamlConfig:
    """Mirror of the settings table in a YAML file.

    With ``ENCRYPT_SETTINGS=1`` the connection secrets are kept in the system
    keyring and the file only records that a value exists.
    """

    SENSITIVE_KEYS = {
        "database_url",
        "auth_endpoint",
    }

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path
        self.encrypt = os.environ.get("ENCRYPT_SETTINGS") == "1"
        self.service = "evolution"

    def _reveal(self, data: dict) -> dict:
        for key in self.SENSITIVE_KEYS & set(data):
            secret = keyring.get_password(self.service, key)
            if secret is None:
                data.pop(key)
            else:
                data[key] = secret
        return data

    def _conceal(self, data: dict) -> dict:
        out = dict(data)
        for key in self.SENSITIVE_KEYS & set(out):
            if out[key] is None:
                out.pop(key)
                continue
            keyring.set_password(self.service, key, str(out[key]))
            out[key] = True
        return out

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return self._reveal(data) if self.encrypt else data

    def save(self, data: dict) -> None:
        out = self._conceal(data) if self.encrypt else dict(data)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f, allow_unicode=True)


def runtime_paths() -> tuple[str, str]:
    """Return the database and settings paths taken from the environment."""
    return (
        os.environ.get("DB_PATH", "evolution.db"),
        os.environ.get("YAML_PATH", "settings.yaml"),
    )


def log_format(setting: str | None = None) -> str:
    """``EVOLUTION_LOG_FORMAT`` wins over the stored ``log_format`` setting."""
    return os.environ.get("EVOLUTION_LOG_FORMAT") or setting or "text"
