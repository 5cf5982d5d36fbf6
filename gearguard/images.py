"""
gearguard/images.py

Image host client (imgbb). Used only when an HR attaches a product image.
"""

from __future__ import annotations

import base64

import requests

from gearguard.config import HTTP_TIMEOUT_SECONDS, IMGBB_API_KEY, IMGBB_UPLOAD_URL, IS_DEV
from gearguard.errors import UploadError


def encode_image(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


class ImageHost:
    """Interface for image hosts: upload(base64_image) -> public URL."""

    def upload(self, base64_image: str) -> str:
        raise NotImplementedError


class ImgbbHost(ImageHost):
    def __init__(
        self,
        api_key: str = IMGBB_API_KEY,
        upload_url: str = IMGBB_UPLOAD_URL,
        timeout: int = HTTP_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.upload_url = upload_url
        self.timeout = timeout

    def upload(self, base64_image: str) -> str:
        if not self.api_key:
            raise UploadError("Image host is not configured")

        try:
            resp = requests.post(
                self.upload_url,
                params={"key": self.api_key},
                data={"image": base64_image},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            print(f"[IMAGES] Upload failed: {type(e).__name__}")
            raise UploadError("Image upload failed")

        if resp.status_code >= 400:
            print(f"[IMAGES] Upload rejected: status={resp.status_code}")
            raise UploadError("Image upload failed")

        try:
            url = (resp.json().get("data") or {}).get("url")
        except ValueError:
            url = None
        if not url:
            print("[IMAGES] Upload response missing url")
            raise UploadError("Image upload failed")

        if IS_DEV:
            print("[IMAGES] Uploaded image")
        return url
