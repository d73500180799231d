"""FastMCP server exposing DocScout sessions as tools.

Each tool starts a session on the shared orchestrator, streams overall
progress through ``ctx.report_progress()`` while it runs, and returns a
text summary plus a thumbnail of the last screenshot taken.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastmcp import Context, FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from .adapters.images import thumbnail_from_file
from .api.dto import SessionProgress
from .config.settings import settings
from .core.orchestrator.session import SessionOrchestrator
from .errors import SessionNotFoundError
from .runtime.progress import SessionRegistry, get_progress_store
from .runtime.storage import DocumentationStore

logger = logging.getLogger(__name__)

# Seconds a session may be missing from the registry before a tool gives up on it
MISSING_SESSION_GRACE_SECONDS = 30.0


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:  # noqa: ARG001
    """Run the retention sweep while the server is up; stop sessions on exit."""
    stop = asyncio.Event()
    sweeper = asyncio.create_task(_registry.run_sweeper(settings.sweep_interval_seconds, stop))
    logger.info(f"[DocScout MCP] Retention sweep every {settings.sweep_interval_seconds}s")
    try:
        yield
    finally:
        stop.set()
        await _orchestrator.shutdown()
        await sweeper


mcp = FastMCP(name="docscout", lifespan=lifespan)

_doc_store = DocumentationStore(Path(settings.docs_root), Path(settings.artifacts_root))
_registry = SessionRegistry(
    get_progress_store(settings.progress_backend, settings.redis_url, settings.session_retention_seconds),
    retention_seconds=settings.session_retention_seconds,
    doc_store=_doc_store,
)
_orchestrator = SessionOrchestrator(_registry, _doc_store, settings)


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> JSONResponse:  # noqa: ARG001
    return JSONResponse({"status": "healthy", "service": "docscout-mcp"})


async def follow_session(
    registry: SessionRegistry,
    session_id: str,
    ctx: Context,
    poll_seconds: float,
    missing_grace_seconds: float = MISSING_SESSION_GRACE_SECONDS,
) -> SessionProgress:
    """Relay progress to the MCP client until the session reaches a terminal status.

    Raises SessionNotFoundError once the record has been absent for
    ``missing_grace_seconds`` in a row.
    """
    loop = asyncio.get_running_loop()
    last = -1
    missing_since: float | None = None
    while True:
        progress = await registry.fetch(session_id)
        if progress is None:
            missing_since = missing_since if missing_since is not None else loop.time()
            if loop.time() - missing_since >= missing_grace_seconds:
                raise SessionNotFoundError(f"Session {session_id} is no longer tracked")
        else:
            missing_since = None
            if progress.overall_progress > last:
                last = progress.overall_progress
                await ctx.report_progress(
                    progress=progress.overall_progress,
                    total=100,
                    message=f"{progress.status.value} - {progress.current_task or 'processing'}",
                )
            if progress.status.is_terminal:
                return progress
        await asyncio.sleep(poll_seconds)


def _last_screenshot(progress: SessionProgress) -> str | None:
    for task in reversed(progress.tasks):
        if task.screenshots:
            return task.screenshots[-1]
    return None


def build_tool_result(progress: SessionProgress, summary: str, structured: dict[str, Any]):
    from fastmcp.tools.tool import ToolResult  # noqa: PLC0415
    from mcp.types import ImageContent, TextContent  # noqa: PLC0415

    content_blocks: list[TextContent | ImageContent] = [TextContent(type="text", text=summary)]
    last = _last_screenshot(progress)
    thumbnail = thumbnail_from_file(last) if last else None
    if thumbnail:
        content_blocks.append(ImageContent(type="image", data=thumbnail, mimeType="image/png"))
    return ToolResult(content=content_blocks, structured_content=structured)


def _phase_lines(progress: SessionProgress) -> str:
    lines = []
    for task in progress.tasks:
        line = f"- {task.task_name}: {task.status.value} ({len(task.screenshots)} screenshots)"
        if task.error:
            line += f" error: {task.error}"
        lines.append(line)
    return "\n".join(lines)


@mcp.tool
async def document_platform(platform_name: str, platform_url: str, ctx: Context):
    """Explore a SaaS platform and write a documentation bundle for it.

    Runs three phases (homepage analysis, authentication flow discovery and
    feature exploration) in a remote browser. If a login page is reached the
    run waits for a human to sign in through the live view before capturing
    the authenticated area.

    Args:
        platform_name: Display name of the platform
        platform_url: Homepage URL to start from
        ctx: FastMCP context for progress reporting (automatically provided)

    Returns:
        Summary text, a thumbnail of the last screenshot and the documentation bundle
    """
    session_id = await _orchestrator.start_documentation(platform_name, platform_url)
    await ctx.info(f"Started documentation session {session_id}")
    progress = await follow_session(_registry, session_id, ctx, settings.progress_poll_seconds)
    documentation = _doc_store.get_documentation(session_id)
    summary = (
        f"Documentation session {session_id} {progress.status.value} "
        f"({progress.overall_progress}%)\n{_phase_lines(progress)}"
    )
    if progress.error:
        summary += f"\nError: {progress.error}"
    return build_tool_result(
        progress,
        summary,
        {
            "session": progress.to_wire(),
            "documentation": documentation.to_wire() if documentation else None,
        },
    )


@mcp.tool
async def explore_sign_in(url: str, ctx: Context):
    """Open a URL, look for its sign-in flow and capture what is found.

    Args:
        url: Page to explore
        ctx: FastMCP context for progress reporting (automatically provided)

    Returns:
        Summary text, a thumbnail of the last screenshot and the exploration result
    """
    session_id = await _orchestrator.start_exploration(url)
    await ctx.info(f"Started exploration session {session_id}")
    progress = await follow_session(_registry, session_id, ctx, settings.progress_poll_seconds)
    exploration = _doc_store.get_exploration(session_id)
    summary = f"Exploration session {session_id} {progress.status.value}\n{_phase_lines(progress)}"
    if exploration is not None:
        summary += (
            f"\nSign-in detected: {exploration.sign_in_detected}, "
            f"authenticated: {exploration.authentication_completed}, "
            f"screenshots: {len(exploration.screenshots) + len(exploration.post_auth_screenshots)}"
        )
    return build_tool_result(
        progress,
        summary,
        {
            "session": progress.to_wire(),
            "exploration": exploration.to_wire() if exploration else None,
        },
    )


def main() -> None:
    """Run the MCP server with streamable-http transport."""
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    port = int(os.getenv("MCP_PORT", "8085"))
    host = os.getenv("MCP_HOST", "0.0.0.0")  # nosec B104 - Docker container binding

    logger.info(f"[DocScout MCP] Starting server on {host}:{port}/mcp")
    mcp.run(transport="streamable-http", host=host, port=port, path="/mcp")


if __name__ == "__main__":
    main()
