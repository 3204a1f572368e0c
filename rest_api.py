import logging
import secrets
from typing import Optional
from fastapi import FastAPI, HTTPException, Header

from config import YamlConfig, APP_VERSION
from db import (
    UserRepository,
    APIKeyRepository,
    SetRepository,
    TargetRepository,
    AdherenceRepository,
    AsyncSetRepository,
    AsyncTargetRepository,
    AsyncAdherenceRepository,
    AsyncUserRepository,
    AsyncAPIKeyRepository,
)
from insights_service import InsightsService
from localization import SUPPORTED_LANGUAGES
from algorithms import MathTools

logger = logging.getLogger(__name__)


class InsightsAPI:
    """Provides REST endpoints for training insights."""

    def __init__(
        self,
        db_path: Optional[str] = None,
        yaml_path: str = "settings.yaml",
    ) -> None:
        self.config = YamlConfig(yaml_path)
        settings = self.config.settings()
        self.db_path = db_path or settings.db_path
        self.users = UserRepository(self.db_path)
        self.api_keys = APIKeyRepository(self.db_path)
        self.async_api_keys = AsyncAPIKeyRepository(self.db_path)
        self.service = InsightsService(
            self.users,
            SetRepository(self.db_path),
            TargetRepository(self.db_path),
            AdherenceRepository(self.db_path),
            language=settings.language,
            tz=self.config.tzinfo(),
            async_set_repo=AsyncSetRepository(self.db_path),
            async_target_repo=AsyncTargetRepository(self.db_path),
            async_adherence_repo=AsyncAdherenceRepository(self.db_path),
            async_user_repo=AsyncUserRepository(self.db_path),
        )
        self.app = FastAPI(
            title="Training Insights API",
            description="Coaching insights computed from logged strength training",
            version=APP_VERSION,
        )
        self._setup_routes()

    def _setup_routes(self) -> None:
        @self.app.get("/health")
        def health():
            return {"status": "ok"}

        @self.app.post("/users")
        def create_user(name: str):
            try:
                uid = self.users.create(name)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": uid}

        @self.app.get("/users")
        def list_users():
            return [{"id": uid, "name": name} for uid, name in self.users.fetch_users()]

        @self.app.post("/api_keys")
        def add_api_key(user_id: int, name: str, key: Optional[str] = None):
            if not self.users.exists(user_id):
                raise HTTPException(status_code=404, detail="user not found")
            key = key or secrets.token_hex(16)
            kid = self.api_keys.add(user_id, name, key)
            return {"id": kid, "key": key}

        @self.app.get("/api_keys")
        def list_api_keys():
            return [
                {"id": kid, "user_id": uid, "name": name}
                for kid, uid, name, _ in self.api_keys.fetch_keys()
            ]

        @self.app.delete("/api_keys/{key_id}")
        def delete_api_key(key_id: int):
            self.api_keys.delete(key_id)
            return {"status": "deleted"}

        @self.app.get("/insights")
        async def insights(
            language: Optional[str] = None,
            x_api_key: Optional[str] = Header(default=None),
        ):
            if language is not None and language not in SUPPORTED_LANGUAGES:
                raise HTTPException(status_code=400, detail="unsupported language")
            user_id = await self.async_api_keys.resolve_user(x_api_key)
            if user_id is None:
                logger.debug("insights requested without a valid API key")
                return []
            result = await self.service.compute_insights_async(
                user_id, language=language
            )
            return [i.to_dict() for i in result]

        @self.app.get("/one_rep_max")
        def one_rep_max(weight: float, reps: int):
            if weight <= 0 or reps <= 0:
                raise HTTPException(
                    status_code=400, detail="weight and reps must be positive"
                )
            return {"one_rep_max": MathTools.epley_1rm(weight, reps)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(InsightsAPI().app)
