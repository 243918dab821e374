# =============================================================================
# core/yaml_input.py  —  Where deployment YAML comes from
# =============================================================================
#
# A deploy_compute call names exactly one YAML source:
#
#   request       → natural language, turned into YAML by the generator API
#   yaml_content  → the YAML itself
#   yaml_path     → a file on this machine
#
# This module resolves each of those to text, and pulls the `- KEY = VALUE`
# environment assignments out of the result so the deployment response can
# echo them back.
#
# FAILURE MODES:
#   generator timeout / HTTP error / bad URL   → NETWORK
#   generator answers with a bad body          → NETWORK
#   unreadable file                            → FILESYSTEM (names the path)
#   no source at all                           → YAML_PROCESSING
#   env parsing problems                       → logged, never fatal
# =============================================================================

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional

import httpx

from core.errors import ErrorKind, OperationError
from core.models import DeployComputeRequest

logger = logging.getLogger(__name__)

GENERATION_TIMEOUT_SECONDS = 30.0

_ENV_LINE = re.compile(r"^-\s*([^=]*?)\s*=\s*(.*)$")


class YamlGenerator:
    """Client for the natural-language → YAML generation endpoint.

    Args:
        url: Endpoint accepting ``POST {"request": ...}`` and answering
            ``{"yaml": ...}``.
        timeout: Seconds before the call is abandoned.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        url: str,
        timeout: float = GENERATION_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def generate(self, request: str) -> str:
        logger.debug("Generating YAML from natural language request via %s", self.url)
        context = {"request": request, "url": self.url}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json={"request": request},
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as exc:
            logger.error("YAML generation request timed out after %ss", self.timeout)
            raise OperationError(
                ErrorKind.NETWORK,
                "YAML generation request timed out",
                {**context, "timeout": self.timeout, "error": exc},
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("YAML generation request failed: %s", exc)
            raise OperationError(
                ErrorKind.NETWORK,
                f"YAML generation failed: {exc}",
                {**context, "error": exc},
            ) from exc

        if not response.is_success:
            logger.error("YAML API returned %s", response.status_code)
            raise OperationError(
                ErrorKind.NETWORK,
                f"YAML API returned {response.status_code}: {response.reason_phrase}",
                {**context, "status": response.status_code, "response": response.text},
            )

        try:
            body = response.json()
        except ValueError:
            body = None
        yaml_text = body.get("yaml") if isinstance(body, dict) else None
        if not isinstance(yaml_text, str) or not yaml_text.strip():
            logger.error("Invalid YAML API response: %.200s", response.text)
            raise OperationError(
                ErrorKind.NETWORK,
                "Invalid YAML response structure from generator API",
                {**context, "response": response.text},
            )

        logger.debug("YAML generated successfully (%d chars)", len(yaml_text))
        return yaml_text


async def load_yaml_file(yaml_path: str) -> str:
    """Read a UTF-8 YAML file without blocking the event loop."""
    logger.debug("Loading YAML from file %s", yaml_path)
    try:
        content = await asyncio.to_thread(Path(yaml_path).expanduser().read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Failed to read YAML file %s: %s", yaml_path, exc)
        raise OperationError(
            ErrorKind.FILESYSTEM,
            f"Failed to read YAML file {yaml_path}: {exc}",
            {"path": yaml_path, "error": exc},
        ) from exc
    logger.debug("YAML loaded successfully from %s", yaml_path)
    return content


async def resolve_yaml(req: DeployComputeRequest, generator: YamlGenerator) -> str:
    """Return the YAML text for whichever source the request names."""
    if req.request:
        return await generator.generate(req.request)
    if req.yaml_content:
        logger.debug("Using provided YAML content")
        return req.yaml_content
    if req.yaml_path:
        return await load_yaml_file(req.yaml_path)
    raise OperationError(ErrorKind.YAML_PROCESSING, "No YAML input method provided")


# =============================================================================
# Environment extraction
# =============================================================================
# Spheron ICL puts container environment under a service like this:
#
#     services:
#       web:
#         env:
#           - API_KEY=abc
#           - MODE = production
#
# Every `env:` block is scanned; the block ends at the first non-blank line
# indented no deeper than the `env:` key itself.
# =============================================================================
def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _extract_env(yaml_text: str) -> dict[str, str]:
    env: dict[str, str] = {}
    lines = yaml_text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.strip() != "env:":
            i += 1
            continue
        base = _indent(line)
        i += 1
        while i < len(lines):
            entry = lines[i]
            if entry.strip() and _indent(entry) <= base:
                break
            match = _ENV_LINE.match(entry.strip())
            if match and match.group(1):
                env[match.group(1)] = match.group(2)
            i += 1
    return env


def parse_environment_variables(yaml_text: str) -> dict[str, str]:
    """Pull `- KEY = VALUE` pairs out of the YAML's env blocks.

    Never raises: a YAML document we can't make sense of just has no
    environment to report.
    """
    try:
        env = _extract_env(yaml_text)
    except Exception as exc:
        logger.warning("Failed to parse YAML environment variables: %s", exc)
        return {}
    logger.debug("Parsed %d environment variables from YAML", len(env))
    return env
