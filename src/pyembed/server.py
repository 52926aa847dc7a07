"""MCP server exposing the embedded environment as tools."""
import asyncio
import json
from typing import Any, Dict, List

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions
from mcp.server import stdio

from pyembed.config import load_config, log_level
from pyembed.environments.environment import EmbeddedEnvironment
from pyembed.errors import EmbedError, log_error
from pyembed.logging import configure_logging, get_logger

logger = get_logger("pyembed.server")

SERVER_NAME = "pyembed"
SERVER_VERSION = "0.1.0"


def _tool(name: str, description: str, properties: Dict[str, Any], required=()) -> types.Tool:
    return types.Tool(
        name=name,
        description=description,
        inputSchema={
            "type": "object",
            "properties": properties,
            "required": list(required),
        },
    )


tools = [
    _tool(
        "embed_initialize",
        "Download and bootstrap the embedded Python runtime and its virtual environment",
        {},
    ),
    _tool(
        "embed_install_requirements",
        "Install a requirements file into the virtual environment",
        {"path": {"type": "string", "description": "Path to requirements.txt"}},
        ["path"],
    ),
    _tool(
        "embed_install_editable",
        "Install a local project in editable mode (pip install -e .)",
        {"path": {"type": "string", "description": "Project directory"}},
        ["path"],
    ),
    _tool(
        "embed_install_packages",
        "Install packages into the virtual environment",
        {
            "packages": {"type": "array", "items": {"type": "string"}},
            "index_url": {"type": "string", "description": "Alternate package index"},
        },
        ["packages"],
    ),
    _tool(
        "embed_install_torch",
        "Install torch, torchvision and torchaudio matching the host CUDA version",
        {
            "version": {"type": "string", "description": "torch version, e.g. 2.5.1"},
            "cuda": {"type": "string", "description": "CUDA override, e.g. 12.6 or cu126"},
        },
    ),
    _tool(
        "embed_run_script",
        "Run a Python script inside the virtual environment",
        {
            "path": {"type": "string", "description": "Script path"},
            "args": {"type": "array", "items": {"type": "string"}},
            "working_dir": {"type": "string"},
        },
        ["path"],
    ),
    _tool(
        "embed_remove",
        "Delete the embedded runtime and virtual environment",
        {},
    ),
]


def _result(success: bool, **payload: Any) -> List[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps({"success": success, **payload}))]


async def handle_tool_call(
    env: EmbeddedEnvironment, name: str, arguments: Dict[str, Any]
) -> List[types.TextContent]:
    """Dispatch one tool call and report captured output as JSON."""
    stdout: List[str] = []
    stderr: List[str] = []
    callbacks = {"on_output": stdout.append, "on_error": stderr.append}

    try:
        if name == "embed_initialize":
            code = await env.initialize(**callbacks)
        elif name == "embed_install_requirements":
            code = await env.install_requirements(arguments.get("path"), **callbacks)
        elif name == "embed_install_editable":
            code = await env.install_editable(arguments.get("path"), **callbacks)
        elif name == "embed_install_packages":
            code = await env.install_packages(
                arguments.get("packages"), arguments.get("index_url"), **callbacks
            )
        elif name == "embed_install_torch":
            code = await env.install_torch(
                arguments.get("version"), arguments.get("cuda"), **callbacks
            )
        elif name == "embed_run_script":
            code = await env.run_script(
                arguments.get("path"),
                arguments.get("args") or [],
                arguments.get("working_dir"),
                **callbacks,
            )
        elif name == "embed_remove":
            code = env.remove(on_error=stderr.append)
        else:
            return _result(False, error=f"Unknown tool: {name}")

    except EmbedError as e:
        log_error(e, {"tool": name}, logger)
        return _result(False, error=str(e), code=e.code, details=e.details)
    except Exception as e:
        log_error(e, {"tool": name}, logger)
        return _result(False, error=str(e))

    return _result(
        code == 0, data={"exit_code": code, "stdout": stdout, "stderr": stderr}
    )


async def init_server(env: EmbeddedEnvironment) -> Server:
    logger.info("tools_registered", tools=[t.name for t in tools], root=str(env.root))

    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        logger.debug("tools_requested")
        return tools

    @server.call_tool()
    async def call_tool(
        name: str, arguments: Dict[str, Any]
    ) -> list[types.TextContent | types.ImageContent | types.EmbeddedResource]:
        logger.debug("tool_call", tool=name, arguments=arguments)
        return await handle_tool_call(env, name, arguments or {})

    return server


async def serve() -> None:
    configure_logging(log_level())
    env = EmbeddedEnvironment(load_config())
    logger.info("server_starting", root=str(env.root))
    server = await init_server(env)
    async with stdio.stdio_server() as (read_stream, write_stream):
        init_options = InitializationOptions(
            server_name=SERVER_NAME,
            server_version=SERVER_VERSION,
            capabilities=types.ServerCapabilities(
                tools=types.ToolsCapability(listChanged=False),
                logging=types.LoggingCapability(),
            ),
        )
        await server.run(read_stream, write_stream, init_options)


def main() -> None:
    """Run the MCP server."""
    asyncio.run(serve())
