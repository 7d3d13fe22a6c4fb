"""
config.py
---------

Application settings, read once from the environment. Flask picks them up
through ``app.config.from_object``; tests pass a mapping of overrides to
``create_app`` instead.
"""
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Config:
    SECRET_KEY: str = "dev-secret"
    TJ_DB: str = "tradebook.db"
    TJ_STORE: str = "sqlite"            # sqlite | supabase
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    TJ_DEFAULT_OWNER: str = "local"
    TJ_CURRENCY: str = "USD"
    # account-currency value of one price unit per unit of position
    TJ_PIP_VALUE: float = 1.0
    LOG_LEVEL: str = "INFO"
    TESTING: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        env = os.environ if environ is None else environ
        return cls(
            SECRET_KEY=env.get("SECRET_KEY", cls.SECRET_KEY),
            TJ_DB=env.get("TJ_DB", cls.TJ_DB),
            TJ_STORE=env.get("TJ_STORE", cls.TJ_STORE).strip().lower(),
            SUPABASE_URL=env.get("SUPABASE_URL") or None,
            SUPABASE_KEY=env.get("SUPABASE_KEY") or None,
            TJ_DEFAULT_OWNER=env.get("TJ_DEFAULT_OWNER", cls.TJ_DEFAULT_OWNER),
            TJ_CURRENCY=env.get("TJ_CURRENCY", cls.TJ_CURRENCY).upper(),
            TJ_PIP_VALUE=float(env.get("TJ_PIP_VALUE", cls.TJ_PIP_VALUE)),
            LOG_LEVEL=env.get("LOG_LEVEL", cls.LOG_LEVEL).upper(),
        )

    def override(self, values: Mapping[str, Any]) -> "Config":
        """Copy with the known keys of ``values`` replaced (unknown keys ignored)."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in values.items() if k in known})

    def validate(self) -> None:
        if self.TJ_STORE not in ("sqlite", "supabase"):
            raise ValueError(f"TJ_STORE must be 'sqlite' or 'supabase', got {self.TJ_STORE!r}")
        if self.TJ_STORE == "supabase" and not (self.SUPABASE_URL and self.SUPABASE_KEY):
            raise ValueError("SUPABASE_URL and SUPABASE_KEY are required when TJ_STORE=supabase")
        if self.TJ_PIP_VALUE <= 0:
            raise ValueError("TJ_PIP_VALUE must be greater than 0")
