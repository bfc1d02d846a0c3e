"""MCP server exposing the profile image grabber as a tool."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from . import pipeline
from .config import DEFAULT_OUTPUT_DIR, GrabConfig

logger = logging.getLogger("profile_grabber.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="profile-grabber")


@mcp.tool()
async def grab_profile_image(address: str, output_dir: str = DEFAULT_OUTPUT_DIR) -> Dict[str, Any]:
    """Download the profile photo behind a profile URL and report where it went."""
    config = GrabConfig(output_root=Path(output_dir).expanduser().resolve())
    result = await pipeline.grab_profile_image(address, config)
    return result.to_dict()


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
