"""ASGI entrypoint for the recipe ingestion API."""

from recipe_ingest.api.app import create_app
from recipe_ingest.containers import build_container

app = create_app(build_container())
