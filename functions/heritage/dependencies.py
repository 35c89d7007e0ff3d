"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from heritage.auth import AuthClient, AuthSession, InMemoryAuthClient, SupabaseAuthClient
from heritage.config import get_settings
from heritage.db import DbClient, InMemoryDbClient, PostgresDbClient
from heritage.errors import AuthError
from heritage.events import InMemorySettingsNotifier, RedisSettingsNotifier, SettingsNotifier
from heritage.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from heritage.views import BackgroundMusic
from heritage.workflow import AdminWorkflow

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_auth_client: AuthClient | None = None
_notifier: SettingsNotifier | None = None
_background_music: BackgroundMusic | None = None
_workflows: dict[str, AdminWorkflow] = {}

# Oldest workflows are closed past this; they rebuild from the token on use.
MAX_WORKFLOWS = 16

_bearer = HTTPBearer(auto_error=False)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client shared by every request.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_endpoint:
        _storage_client = InMemoryStorageClient(bucket=settings.storage_bucket)
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint,
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.storage_public_base_url,
        )
    return _storage_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.supabase_url:
        _auth_client = InMemoryAuthClient(
            email=settings.admin_email, password=settings.admin_password
        )
    else:
        _auth_client = SupabaseAuthClient(
            url=settings.supabase_url, anon_key=settings.supabase_anon_key or ""
        )
    return _auth_client


def get_settings_notifier() -> SettingsNotifier:
    global _notifier
    if _notifier:
        return _notifier

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _notifier = RedisSettingsNotifier(
            url=settings.redis_url, channel=settings.settings_channel
        )
    else:
        _notifier = InMemorySettingsNotifier()
    return _notifier


def get_background_music() -> BackgroundMusic:
    global _background_music
    if _background_music:
        return _background_music
    _background_music = BackgroundMusic(get_db_client(), get_settings_notifier())
    return _background_music


def require_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    auth: AuthClient = Depends(get_auth_client),
) -> AuthSession:
    if credentials is None:
        raise AuthError("Sign in required")
    session = auth.get_session(credentials.credentials)
    if session is None:
        drop_workflow(credentials.credentials)
        raise AuthError("Session expired or invalid")
    return session


def new_workflow() -> AdminWorkflow:
    return AdminWorkflow(
        db=get_db_client(),
        auth=get_auth_client(),
        storage=get_storage_client(),
        notifier=get_settings_notifier(),
    )


def register_workflow(workflow: AdminWorkflow) -> None:
    _workflows[workflow.session.access_token] = workflow
    while len(_workflows) > MAX_WORKFLOWS:
        drop_workflow(next(iter(_workflows)))


def drop_workflow(access_token: str) -> None:
    workflow = _workflows.pop(access_token, None)
    if workflow is not None:
        workflow.close()


def get_workflow(session: AuthSession = Depends(require_session)) -> AdminWorkflow:
    """The signed-in operator's workflow, rebuilt from the token if needed."""
    workflow = _workflows.get(session.access_token)
    if workflow is None or not workflow.is_authenticated:
        drop_workflow(session.access_token)
        workflow = AdminWorkflow(
            db=get_db_client(),
            auth=get_auth_client(),
            storage=get_storage_client(),
            notifier=get_settings_notifier(),
            access_token=session.access_token,
        )
        if not workflow.is_authenticated:
            workflow.close()
            raise AuthError("Session expired or invalid")
        register_workflow(workflow)
    return workflow


def reset_state() -> None:
    """Forget every singleton (used by tests)."""
    global _db_client, _storage_client, _auth_client, _notifier, _background_music
    for token in list(_workflows):
        drop_workflow(token)
    if _background_music is not None:
        _background_music.close()
    _db_client = _storage_client = _auth_client = _notifier = None
    _background_music = None
