"""Content store backed by a Telegram bot upload channel (Bot API over HTTP)."""

import time
from typing import Any, Dict, Optional, Tuple

import httpx

from common.constants import (
    TELEGRAM_API_BASE_URL,
    TELEGRAM_MAX_RETRIES,
    TELEGRAM_RETRY_BACKOFF_MULTIPLIER,
    TELEGRAM_TIMEOUT_SECONDS,
)
from common.exceptions import NotFoundError, StoreUnavailableError
from common.logging_config import get_logger
from contentstore.client import ContentStoreClient
from contentstore.mapping_registry import MappingRegistry

logger = get_logger(__name__)

# Message fields that may carry the uploaded file, depending on how the
# server classified the document.
_MEDIA_FIELDS = ("document", "animation", "audio", "video", "voice")

_NOT_FOUND_MARKERS = (
    "not found",
    "invalid file_id",
    "wrong file_id",
)


class TelegramContentStore(ContentStoreClient):
    """
    Bot API client that stores each object as a document message in one chat.

    Uploads carry the tag as a ``#tag`` caption. Deletion resolves the
    message identifier through the mapping registry. Transient failures
    (5xx, 429 and network errors) are retried with exponential backoff.
    """

    def __init__(
        self,
        token: str,
        chat_id: int,
        registry: MappingRegistry,
        api_base_url: str = TELEGRAM_API_BASE_URL,
        timeout: float = TELEGRAM_TIMEOUT_SECONDS,
        max_retries: int = TELEGRAM_MAX_RETRIES,
        retry_backoff_multiplier: int = TELEGRAM_RETRY_BACKOFF_MULTIPLIER,
        session: Optional[httpx.Client] = None,
    ):
        """
        Initialize the Bot API client.

        Args:
            token: Bot token issued by BotFather
            chat_id: Chat that stores the uploaded documents
            registry: Registry used to resolve message ids for deletion
            api_base_url: Bot API server (the public one, or a local server)
            timeout: Per-request timeout in seconds
            max_retries: Retry attempts for transient failures
            retry_backoff_multiplier: Base of the exponential backoff
            session: Preconfigured httpx client, mainly for tests
        """
        self.chat_id = chat_id
        self.registry = registry
        self.max_retries = max_retries
        self.retry_backoff_multiplier = retry_backoff_multiplier
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self.session = session or httpx.Client(timeout=timeout)
        logger.info(f"Initialized TelegramContentStore [chat_id={chat_id}, api={self._api_base_url}]")

    def _method_url(self, method: str) -> str:
        return f"{self._api_base_url}/bot{self._token}/{method}"

    def _file_url(self, file_path: str) -> str:
        return f"{self._api_base_url}/file/bot{self._token}/{file_path}"

    def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Make an HTTP request, retrying on 5xx, 429 and network failures.

        Args:
            method: HTTP method
            url: Absolute URL
            **kwargs: Passed through to httpx

        Returns:
            The last response received

        Raises:
            StoreUnavailableError: If the network fails on every attempt
        """
        last_exception = None

        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.request(method, url, **kwargs)
            except (httpx.NetworkError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self.retry_backoff_multiplier ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{self.max_retries + 1}): "
                        f"{method} {url} error={type(e).__name__}, retrying in {delay}s"
                    )
                    time.sleep(delay)
                    continue
                logger.error(f"Network error (max retries exceeded): {method} {url} error={e}")
                break

            retryable = response.status_code == 429 or response.status_code >= 500
            if retryable and attempt < self.max_retries:
                delay = self._retry_after(response) or self.retry_backoff_multiplier ** attempt
                logger.warning(
                    f"Bot API error (attempt {attempt + 1}/{self.max_retries + 1}): "
                    f"{method} {url} status={response.status_code}, retrying in {delay}s"
                )
                time.sleep(delay)
                continue

            return response

        raise StoreUnavailableError(f"Bot API unreachable: {last_exception}") from last_exception

    @staticmethod
    def _retry_after(response: httpx.Response) -> Optional[int]:
        if response.status_code != 429:
            return None
        try:
            return int(response.json().get("parameters", {}).get("retry_after"))
        except (ValueError, TypeError):
            return None

    def _call(self, api_method: str, **kwargs) -> Dict[str, Any]:
        """
        Call a Bot API method and unwrap its ``result``.

        Raises:
            NotFoundError: If the API reports a missing message or file
            StoreUnavailableError: On any other API or transport failure
        """
        response = self._request_with_retry("POST", self._method_url(api_method), **kwargs)

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code == 200 and payload.get("ok"):
            return payload.get("result")

        description = payload.get("description") or response.text or f"HTTP {response.status_code}"
        if response.status_code == 400 and any(m in description.lower() for m in _NOT_FOUND_MARKERS):
            raise NotFoundError(f"{api_method}: {description}")

        logger.error(f"Bot API call failed: {api_method} status={response.status_code} description={description}")
        raise StoreUnavailableError(f"{api_method} failed: {description}")

    def upload(self, name: str, data: bytes, tag: str) -> Tuple[str, int]:
        logger.info(f"Uploading {name} ({len(data)} bytes) [tag={tag}]")

        message = self._call(
            "sendDocument",
            data={"chat_id": str(self.chat_id), "caption": f"#{tag}"},
            files={"document": (name, data)},
        )

        media = next((message[field] for field in _MEDIA_FIELDS if field in message), None)
        if media is None or "file_id" not in media:
            raise StoreUnavailableError(f"sendDocument returned no file for {name}")

        content_id = media["file_id"]
        message_id = int(message["message_id"])
        logger.info(f"Uploaded {name} [content_id={content_id}, message_id={message_id}]")
        return content_id, message_id

    def download(self, content_id: str) -> bytes:
        logger.debug(f"Downloading [content_id={content_id}]")

        tg_file = self._call("getFile", data={"file_id": content_id})
        file_path = tg_file.get("file_path")
        if not file_path:
            raise NotFoundError(f"No downloadable file for content {content_id}")

        response = self._request_with_retry("GET", self._file_url(file_path))
        if response.status_code == 404:
            raise NotFoundError(f"File for content {content_id} is gone")
        if response.status_code != 200:
            raise StoreUnavailableError(
                f"Download of content {content_id} failed with HTTP {response.status_code}"
            )
        return response.content

    def delete(self, content_id: str) -> None:
        message_id = self.registry.find(content_id)
        self.discard(content_id, message_id)

    def discard(self, content_id: str, message_id: int) -> None:
        self._call(
            "deleteMessage",
            data={"chat_id": str(self.chat_id), "message_id": str(message_id)},
        )
        logger.info(f"Deleted message {message_id} [content_id={content_id}]")

    def close(self) -> None:
        self.session.close()
