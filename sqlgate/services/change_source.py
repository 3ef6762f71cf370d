"""
Change sources feeding the script ledger.

BaseChangeSource is the interface the reconciler depends on. GitHubChangeSource
implements it against the GitHub REST API with aiohttp.
"""

import base64
import hashlib
import hmac
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from sqlgate.config.settings import Settings
from sqlgate.core.exceptions import ChangeSourceError
from sqlgate.core.logger import LoggerManager
from sqlgate.schemas.script import PendingChangeRequest
from sqlgate.schemas.sync import ChangedFile, ChangeRequest

logger = LoggerManager.get_instance().sync

SIGNATURE_PREFIX = "sha256="


class BaseChangeSource(ABC):
    """Abstract source of approved, merged change requests."""

    @abstractmethod
    async def list_merged_change_requests(self, limit: int) -> List[ChangeRequest]:
        """
        Merged change requests, most recently updated first.

        Args:
            limit: Size of the recent window to inspect

        Returns:
            List of merged change requests
        """
        pass

    @abstractmethod
    async def list_approvers(self, change_request_id: int) -> List[str]:
        """Unique identities that approved the change request."""
        pass

    @abstractmethod
    async def list_changed_files(self, change_request_id: int) -> List[ChangedFile]:
        """Files touched by the change request, in listing order."""
        pass

    @abstractmethod
    async def fetch_file_content(self, path: str) -> Optional[str]:
        """
        Current content of a file.

        Returns:
            The text, or None if the file no longer exists
        """
        pass

    @abstractmethod
    async def list_open_change_requests(self, limit: int) -> List[PendingChangeRequest]:
        """Open change requests, most recently updated first, without file lists."""
        pass

    @abstractmethod
    def verify_incoming_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        """Check the signature of an inbound notification body."""
        pass


class GitHubChangeSource(BaseChangeSource):
    """Change source backed by pull requests in one GitHub repository."""

    def __init__(
        self,
        repo: str,
        token: str = "",
        api_url: str = "https://api.github.com",
        webhook_secret: str = "",
        timeout_seconds: float = 30.0,
    ):
        owner, _, name = (repo or "").partition("/")
        if not owner or not name:
            logger.warning(f"GITHUB_REPO '{repo}' is not in owner/repo form; change source calls will fail")
        self.owner = owner
        self.repo = name
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.webhook_secret = webhook_secret
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, current: Settings) -> "GitHubChangeSource":
        return cls(
            repo=current.GITHUB_REPO,
            token=current.GITHUB_TOKEN,
            api_url=current.GITHUB_API_URL,
            webhook_secret=current.GITHUB_WEBHOOK_SECRET,
            timeout_seconds=current.SYNC_ITEM_TIMEOUT_SECONDS,
        )

    @property
    def _repo_url(self) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """
        GET a repository API path.

        Returns:
            Decoded JSON, or None on 404

        Raises:
            ChangeSourceError: On any other non-200 status
        """
        url = f"{self._repo_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=self._headers(), params=params) as response:
                if response.status == 404:
                    return None
                if response.status != 200:
                    error_text = await response.text()
                    raise ChangeSourceError(
                        f"GitHub API {path} returned {response.status}: {error_text[:200]}",
                        status=response.status,
                    )
                return await response.json()

    async def list_merged_change_requests(self, limit: int) -> List[ChangeRequest]:
        data = await self._get_json(
            "/pulls",
            params={"state": "closed", "sort": "updated", "direction": "desc", "per_page": limit},
        ) or []
        return [
            ChangeRequest(id=pr["number"], url=pr["html_url"], merged_at=pr["merged_at"])
            for pr in data
            if pr.get("merged_at")
        ]

    async def list_approvers(self, change_request_id: int) -> List[str]:
        reviews = await self._get_json(f"/pulls/{change_request_id}/reviews", params={"per_page": 100}) or []
        approvers: List[str] = []
        for review in reviews:
            if review.get("state") != "APPROVED":
                continue
            login = (review.get("user") or {}).get("login") or "unknown"
            if login not in approvers:
                approvers.append(login)
        return approvers

    async def list_changed_files(self, change_request_id: int) -> List[ChangedFile]:
        files = await self._get_json(f"/pulls/{change_request_id}/files", params={"per_page": 100}) or []
        return [ChangedFile(path=f["filename"], status=f.get("status", "modified")) for f in files]

    async def fetch_file_content(self, path: str) -> Optional[str]:
        data = await self._get_json(f"/contents/{quote(path)}")
        if not isinstance(data, dict) or "content" not in data:
            return None
        return base64.b64decode(data["content"]).decode("utf-8")

    async def list_open_change_requests(self, limit: int) -> List[PendingChangeRequest]:
        data = await self._get_json(
            "/pulls",
            params={"state": "open", "sort": "updated", "direction": "desc", "per_page": limit},
        ) or []
        return [
            PendingChangeRequest(
                id=pr["number"],
                title=pr.get("title") or "",
                url=pr["html_url"],
                author=(pr.get("user") or {}).get("login") or "unknown",
                created_at=pr.get("created_at"),
            )
            for pr in data
        ]

    def verify_incoming_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        """
        Verify an ``X-Hub-Signature-256`` header against the webhook secret.

        With no secret configured, verification is skipped and the payload accepted.
        """
        if not self.webhook_secret:
            logger.warning("No webhook secret configured, skipping signature verification")
            return True
        if not signature:
            return False

        digest = hmac.new(self.webhook_secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(signature, f"{SIGNATURE_PREFIX}{digest}")
