"""Export service: settings, token and last-used profile around run_export.

The service owns one AbortController per in-flight request id so a caller
can cancel by id. Stores are small JSON files under the configured state
directory; each write goes to a temp file and is atomically renamed.
"""

import json
import logging
import os
import tempfile
from functools import partial
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

from .cancellation import AbortController
from .config import DEFAULT_CACHE_TTL_MS, DEFAULT_CONCURRENCY, ExportConfig
from .connectors.github.client import GitHubClient
from .export.runner import run_export
from .models.profile import ExportProfile, profile_from_dict, profile_to_dict
from .models.request import ExportRequest, ExportResult
from .models.resolve import (
    ProfileSource,
    is_profile_for_kind,
    normalize_profile,
    resolve_effective_profile,
)
from .models.settings import (
    RememberScope,
    SettingsV1,
    apply_settings_patch,
    coerce_settings,
    settings_to_dict,
)
from .models.target import Target, TargetKind, target_repo_key

logger = logging.getLogger("ghexport.service")

__all__ = [
    "ExportService",
    "JsonLastProfileStore",
    "JsonSettingsStore",
    "JsonTokenStore",
    "LastProfileStore",
    "SettingsStore",
    "TokenStore",
]

SETTINGS_FILE = "settings.json"
AUTH_FILE = "auth.json"
LAST_PROFILE_FILE = "last_profile.json"

_ENTRY_KEYS = {
    TargetKind.PULL: "pull",
    TargetKind.ISSUE: "issue",
    TargetKind.ACTIONS_RUN: "actionsRun",
}


# =============================================================================
# Store interfaces
# =============================================================================


class SettingsStore(Protocol):
    def get(self) -> SettingsV1: ...

    def patch(self, patch: Mapping[str, Any]) -> SettingsV1: ...


class TokenStore(Protocol):
    def get_token(self) -> str: ...

    def set_token(self, token: str) -> None: ...


class LastProfileStore(Protocol):
    def get(self, scope: RememberScope, target: Target) -> Optional[ExportProfile]: ...

    def set(self, scope: RememberScope, target: Target, profile: ExportProfile) -> None: ...


# =============================================================================
# JSON file stores
# =============================================================================


class _JsonFile:
    """One JSON document on disk. Missing or unreadable files read as None."""

    def __init__(self, path: Path, private: bool = False):
        self.path = Path(path)
        self.private = private

    def read(self) -> Any:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                "state_file_unreadable",
                extra={"path": str(self.path), "error": str(e)},
            )
            return None

    def write(self, data: Any) -> None:
        """Write atomically via temp file + rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path_str = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.stem}_", suffix=".tmp"
        )
        tmp_path = Path(tmp_path_str)

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            if self.private:
                os.chmod(tmp_path, 0o600)
            tmp_path.replace(self.path)
        except Exception:
            if tmp_path.exists():
                tmp_path.unlink()
            raise


class JsonSettingsStore:
    """Settings persisted as the camelCase ``settings_to_dict`` form."""

    def __init__(self, path: Path):
        self._file = _JsonFile(path)

    def get(self) -> SettingsV1:
        return coerce_settings(self._file.read())

    def patch(self, patch: Mapping[str, Any]) -> SettingsV1:
        updated = apply_settings_patch(self.get(), patch)
        self._file.write(settings_to_dict(updated))
        logger.info("settings_updated", extra={"sections": sorted(patch)})
        return updated


class JsonTokenStore:
    """GitHub token storage; the file is created with owner-only permissions."""

    def __init__(self, path: Path):
        self._file = _JsonFile(path, private=True)

    def get_token(self) -> str:
        stored = self._file.read()
        if isinstance(stored, dict) and isinstance(stored.get("token"), str):
            return stored["token"]
        return ""

    def set_token(self, token: str) -> None:
        self._file.write({"token": token})
        logger.info("token_updated", extra={"has_token": bool(token)})


def _parse_entry(value: Any) -> dict[str, ExportProfile]:
    """Parse one ``{pull, issue, actionsRun}`` entry, dropping bad profiles."""
    entry: dict[str, ExportProfile] = {}
    if not isinstance(value, dict):
        return entry

    for kind, key in _ENTRY_KEYS.items():
        profile = profile_from_dict(value.get(key))
        if profile is not None and is_profile_for_kind(profile, kind):
            entry[key] = normalize_profile(profile)
    return entry


class JsonLastProfileStore:
    """Last-used profile per target kind, globally or per ``owner/repo``.

    Layout: ``{"global": {entry}, "repo": {"owner/repo": {entry}}}``.
    """

    def __init__(self, path: Path):
        self._file = _JsonFile(path)

    def _read_state(self) -> dict[str, Any]:
        stored = self._file.read()
        if not isinstance(stored, dict):
            return {"global": {}, "repo": {}}

        repo_raw = stored.get("repo")
        repo = (
            {key: _parse_entry(entry) for key, entry in repo_raw.items()}
            if isinstance(repo_raw, dict)
            else {}
        )
        return {"global": _parse_entry(stored.get("global")), "repo": repo}

    def _write_state(self, state: dict[str, Any]) -> None:
        def dump(entry: dict[str, ExportProfile]) -> dict[str, Any]:
            return {key: profile_to_dict(profile) for key, profile in entry.items()}

        self._file.write(
            {
                "global": dump(state["global"]),
                "repo": {key: dump(entry) for key, entry in state["repo"].items()},
            }
        )

    def get(self, scope: RememberScope, target: Target) -> Optional[ExportProfile]:
        state = self._read_state()
        entry = (
            state["global"]
            if scope is RememberScope.GLOBAL
            else state["repo"].get(target_repo_key(target), {})
        )
        return entry.get(_ENTRY_KEYS[target.kind])

    def set(self, scope: RememberScope, target: Target, profile: ExportProfile) -> None:
        state = self._read_state()
        if scope is RememberScope.GLOBAL:
            entry = state["global"]
        else:
            entry = state["repo"].setdefault(target_repo_key(target), {})
        entry[_ENTRY_KEYS[profile.kind]] = profile
        self._write_state(state)


# =============================================================================
# Service
# =============================================================================


class ExportService:
    """Runs exports with stored settings, token and remembered profiles."""

    def __init__(
        self,
        settings_store: SettingsStore,
        token_store: TokenStore,
        last_profile_store: LastProfileStore,
        client_factory: Callable[..., GitHubClient] = GitHubClient,
        run_export_fn: Callable[..., Awaitable[ExportResult]] = run_export,
        concurrency: int = DEFAULT_CONCURRENCY,
        cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
    ):
        self.settings_store = settings_store
        self.token_store = token_store
        self.last_profile_store = last_profile_store
        self._client_factory = client_factory
        self._run_export = run_export_fn
        self.concurrency = concurrency
        self.cache_ttl_ms = cache_ttl_ms
        self._in_flight: dict[str, AbortController] = {}

    @classmethod
    def from_config(cls, config: ExportConfig) -> "ExportService":
        """Build a service with JSON stores under ``config.state_dir``.

        A token set in the environment takes precedence over the stored one.
        """
        state_dir = config.state_dir
        token_store = JsonTokenStore(state_dir / AUTH_FILE)
        env_token = config.github_token.get_secret_value()
        if env_token:
            token_store = _FixedTokenStore(env_token)

        return cls(
            JsonSettingsStore(state_dir / SETTINGS_FILE),
            token_store,
            JsonLastProfileStore(state_dir / LAST_PROFILE_FILE),
            client_factory=partial(
                GitHubClient,
                api_root=config.github_api_root,
                timeout=config.http_timeout_seconds,
            ),
            concurrency=config.export_concurrency,
            cache_ttl_ms=config.export_cache_ttl_ms,
        )

    def get_effective_profile(
        self, target: Target, profile: Optional[ExportProfile] = None
    ) -> tuple[ExportProfile, ProfileSource]:
        """Resolve request profile, then remembered, then stored defaults."""
        settings = self.settings_store.get()
        remembered = (
            self.last_profile_store.get(settings.behavior.remember_scope, target)
            if settings.behavior.remember_last_used
            else None
        )
        return resolve_effective_profile(
            target.kind,
            settings.defaults,
            request_profile=profile,
            remembered_profile=remembered,
        )

    async def run(self, request: ExportRequest) -> ExportResult:
        settings = self.settings_store.get()
        profile, source = self.get_effective_profile(request.target, request.profile)

        token = self.token_store.get_token()
        client = self._client_factory(token=token or None)
        controller = AbortController()
        self._in_flight[request.request_id] = controller

        logger.info(
            "export_started",
            extra={
                "request_id": request.request_id,
                "kind": request.target.kind.value,
                "profile_source": source.value,
            },
        )

        try:
            result = await self._run_export(
                ExportRequest(
                    request_id=request.request_id,
                    target=request.target,
                    selection=request.selection,
                    profile=profile,
                ),
                client,
                signal=controller.signal,
                concurrency=self.concurrency,
                cache_ttl_ms=self.cache_ttl_ms,
                auth_scope_key="token" if token else "anon",
            )

            if (
                result.ok
                and settings.behavior.remember_last_used
                and is_profile_for_kind(request.profile, request.target.kind)
            ):
                self.last_profile_store.set(
                    settings.behavior.remember_scope, request.target, profile
                )

            return result
        finally:
            self._in_flight.pop(request.request_id, None)
            await client.close()

    def cancel(self, request_id: str) -> dict[str, bool]:
        """Abort the export running under *request_id*, if any."""
        controller = self._in_flight.pop(request_id, None)
        if controller is not None:
            controller.abort(f"request {request_id} canceled")
        return {"ok": True}


class _FixedTokenStore:
    """Read-only token source for a token supplied through configuration."""

    def __init__(self, token: str):
        self._token = token

    def get_token(self) -> str:
        return self._token

    def set_token(self, token: str) -> None:
        raise RuntimeError("Token is set through GITHUB_TOKEN and cannot be changed here.")
