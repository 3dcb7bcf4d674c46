from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import typer

from app.security import API_KEY_HEADER
from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the sensor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    @property
    def http(self) -> httpx.Client:
        return self._client

    def close(self) -> None:
        self._client.close()

    def post_reading(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")
        if not self._config.api_key:
            raise typer.BadParameter("An API key is required (--api-key or SENSOR_API_KEY).")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"{path} does not contain valid JSON: {exc}") from exc

        try:
            response = self._client.post(
                "/api/sensors",
                json=payload,
                headers={API_KEY_HEADER: self._config.api_key},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return response.json()

    def list_readings(
        self,
        since: Optional[str] = None,
        device_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if since:
            params["since"] = since
        if device_id:
            params["device_id"] = device_id
        if limit is not None:
            params["limit"] = limit
        try:
            response = self._client.get("/api/sensors", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return response.json()

    def get_latest(self, device_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        params = {"device_id": device_id} if device_id else {}
        try:
            response = self._client.get("/api/sensors/latest", params=params)
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: "
            f"{detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_transport_error(exc: httpx.HTTPError) -> None:
        typer.secho(f"Request failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
