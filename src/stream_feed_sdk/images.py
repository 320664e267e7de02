"""Image processing endpoints (delete, resize, thumbnail)."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .models import RequestDescriptor

if TYPE_CHECKING:
    from .core.dispatcher import Dispatcher


class ImageStore:
    """Operations on images previously uploaded to the CDN.

    Every request is signed with a token obtained from ``token_provider`` at
    call time.
    """

    def __init__(self, dispatcher: Dispatcher, token_provider: Callable[[], str]) -> None:
        self._dispatcher = dispatcher
        self._token_provider = token_provider

    def _descriptor(self, query: dict[str, Any]) -> RequestDescriptor:
        return RequestDescriptor(url="images/", query=query, signature=self._token_provider())

    async def delete(self, url: str) -> Any:
        """Delete the image stored at ``url``."""
        return await self._dispatcher.delete(self._descriptor({"url": url}))

    async def process(self, url: str, **options: Any) -> Any:
        """Resize or crop an uploaded image.

        Options are ``w``, ``h``, ``resize`` (clip, crop, scale, fill) and
        ``crop`` (top, bottom, left, right, center, or a list of them).
        """
        params = {key: value for key, value in options.items() if value is not None}
        params["url"] = url
        crop = params.get("crop")
        if isinstance(crop, (list, tuple)):
            params["crop"] = ",".join(crop)
        return await self._dispatcher.get(self._descriptor(params))

    async def thumbnail(
        self,
        url: str,
        w: int | str,
        h: int | str,
        *,
        crop: str | list[str] = "center",
        resize: str = "clip",
    ) -> Any:
        """Shorthand for ``process`` with center crop and clip resize by default."""
        return await self.process(url, w=w, h=h, crop=crop, resize=resize)
