"""ASGI entrypoint for the media paywall API."""

from media_paywall.api.app import create_app
from media_paywall.containers import build_container

app = create_app(build_container())
