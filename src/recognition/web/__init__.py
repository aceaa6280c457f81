"""HTTP surface for authoring and serving recognition rules."""

from recognition.web.app import create_app

__all__ = ["create_app"]
