"""
HTTP client for the Docker Registry v2 API of the target registry.
"""

import logging
from typing import Any, Dict, List

import httpx

from image_relay.core.config import Settings
from image_relay.domain.ports import RegistryClient

logger = logging.getLogger(__name__)

# A malformed LOCAL_REGISTRY_URL fails while the client is built, not on the request
REGISTRY_ERRORS = (httpx.HTTPError, httpx.InvalidURL, ValueError)


class HTTPRegistryClient(RegistryClient):
    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or Settings()
        self.url = self.settings.LOCAL_REGISTRY_URL
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.registry_base_url,
            timeout=self.settings.REGISTRY_TIMEOUT_S,
            transport=self._transport,
        )

    async def _get_json(self, path: str) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.get(path)
            response.raise_for_status()
            return response.json()

    async def ping(self) -> bool:
        """GET /v2/ and report whether the registry answered with a 2xx."""
        try:
            async with self._client() as client:
                response = await client.get("/v2/")
                response.raise_for_status()
            return True
        except REGISTRY_ERRORS as e:
            logger.warning(f"Registry {self.url} not accessible: {e}")
            return False

    async def catalog(self) -> List[str]:
        data = await self._get_json("/v2/_catalog")
        repositories = data.get("repositories")
        return repositories if isinstance(repositories, list) else []

    async def tags(self, repository: str) -> List[str]:
        data = await self._get_json(f"/v2/{repository}/tags/list")
        tags = data.get("tags")
        return tags if isinstance(tags, list) else []

    # -------------------------------
    # Aggregated views
    # -------------------------------
    async def list_images(self) -> Dict[str, Any]:
        """Every repository:tag in the registry, flattened."""
        result: Dict[str, Any] = {
            "registryUrl": self.url,
            "images": [],
            "accessible": False,
            "error": None,
        }
        try:
            async with self._client() as client:
                (await client.get("/v2/")).raise_for_status()
            result["accessible"] = True
            for repo in await self.catalog():
                try:
                    repo_tags = await self.tags(repo)
                except REGISTRY_ERRORS as e:
                    logger.warning(f"Failed to get tags for {repo}: {e}")
                    continue
                for tag in repo_tags:
                    result["images"].append({
                        "repository": repo,
                        "tag": tag,
                        "fullName": f"{self.url}/{repo}:{tag}",
                        "pullCommand": f"docker pull {self.url}/{repo}:{tag}",
                    })
        except REGISTRY_ERRORS as e:
            logger.warning(f"Registry not accessible or error occurred: {e}")
            result["accessible"] = False
            result["error"] = str(e)
        return result

    async def summary(self) -> Dict[str, Any]:
        """Repositories grouped with their tags and pull commands."""
        result: Dict[str, Any] = {
            "registryUrl": self.url,
            "repositories": {},
            "totalRepositories": 0,
            "totalImages": 0,
            "accessible": False,
            "error": None,
        }
        try:
            async with self._client() as client:
                (await client.get("/v2/")).raise_for_status()
            result["accessible"] = True
            repositories = await self.catalog()
            result["totalRepositories"] = len(repositories)
            for repo in repositories:
                try:
                    repo_tags = sorted(await self.tags(repo))
                except REGISTRY_ERRORS as e:
                    logger.warning(f"Failed to get tags for {repo}: {e}")
                    result["repositories"][repo] = {"name": repo, "error": str(e)}
                    continue
                result["repositories"][repo] = {
                    "name": repo,
                    "tags": repo_tags,
                    "totalTags": len(repo_tags),
                    "hasLatest": "latest" in repo_tags,
                    "versions": [t for t in repo_tags if t != "latest"],
                    "pullCommands": {
                        "latest": f"docker pull {self.url}/{repo}:latest",
                        "allTags": [f"docker pull {self.url}/{repo}:{t}" for t in repo_tags],
                    },
                }
                result["totalImages"] += len(repo_tags)
        except REGISTRY_ERRORS as e:
            logger.warning(f"Registry not accessible or error occurred: {e}")
            result["accessible"] = False
            result["error"] = str(e)
        return result
