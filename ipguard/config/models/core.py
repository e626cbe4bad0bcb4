# ipguard/config/models/core.py
from typing import List

from pydantic import BaseModel, ConfigDict


class LoggingConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    json_enabled: bool = False
    service_name: str = "ipguard"
    debug_loggers: List[str] = []
