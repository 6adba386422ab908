"""Avatar assignment for newly joined users."""

import asyncio
import inspect
import logging
import random
from typing import Awaitable, Callable, Optional, Union

import requests

from relay import config

logger = logging.getLogger(__name__)

RANDOM_IMAGE_URL = "https://source.unsplash.com/random?sig={sig}"
MAX_IMAGE_SIG = 100000

AvatarSource = Callable[[], Union[str, Awaitable[str]]]


def random_image_reference() -> str:
    """Return a random image URL; the ``sig`` parameter makes each one distinct."""
    sig = random.randint(1, MAX_IMAGE_SIG)
    return RANDOM_IMAGE_URL.format(sig=sig)


def resolve_image_reference(timeout: float = config.AVATAR_TIMEOUT_SECONDS) -> str:
    """Follow the random image redirect once and return the concrete image URL."""
    url = random_image_reference()
    resp = requests.head(url, allow_redirects=False, timeout=timeout)
    resp.raise_for_status()
    return resp.headers.get("Location") or url


class AvatarProvider:
    """Assign avatar references from a pluggable, possibly slow or failing source.

    ``assign`` never raises: errors and timeouts fall back to ``default``.
    """

    def __init__(
        self,
        source: Optional[AvatarSource] = None,
        timeout: float = config.AVATAR_TIMEOUT_SECONDS,
        default: str = config.DEFAULT_AVATAR_URL,
    ):
        self.source = source or random_image_reference
        self.timeout = timeout
        self.default = default

    @classmethod
    def from_config(cls) -> "AvatarProvider":
        if config.AVATAR_RESOLVE:
            return cls(source=resolve_image_reference)
        return cls()

    def _is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.source) or inspect.iscoroutinefunction(
            getattr(self.source, "__call__", None)
        )

    async def _fetch(self):
        if self._is_async():
            result = self.source()
        else:
            # Blocking sources (HTTP) run off the event loop
            result = await asyncio.to_thread(self.source)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def assign(self) -> str:
        try:
            avatar = await asyncio.wait_for(self._fetch(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Avatar source timed out after {self.timeout}s, using default")
            return self.default
        except Exception as e:
            logger.warning(f"Avatar source failed ({e}), using default")
            return self.default
        if not isinstance(avatar, str) or not avatar:
            logger.warning(f"Avatar source returned {avatar!r}, using default")
            return self.default
        return avatar
