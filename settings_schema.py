from typing import Literal, Optional

from pydantic import BaseModel, ValidationError


class SettingsSchema(BaseModel):
    user_id: str = "local"
    user_name: str = "Atleta Evolution"
    timeframe: Literal["WEEK", "MONTH"] = "WEEK"
    language: Literal["pt", "en"] = "pt"
    theme: Literal["dark", "light"] = "dark"
    unknown_date_policy: Literal["january", "exclude"] = "january"
    log_format: Literal["text", "json"] = "text"
    database_url: Optional[str] = None
    auth_endpoint: Optional[str] = None


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
