# /*
# Copyright 2026 The k8s-hook Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""
cli.py - Entry point the job runner invokes as its container hook.

The runner pipes one JSON request to stdin naming the command to run:
    prepare_job         Create the job pod and write the response file
    cleanup_job         Delete the job pod and prune leftovers
    run_container_step  Run a step in a dedicated step pod
    run_script_step     Run a step in the job pod

Environment Variables:
    ACTIONS_RUNNER_POD_NAME, ACTIONS_RUNNER_KUBERNETES_NAMESPACE,
    ACTIONS_RUNNER_CLAIM_NAME, ACTIONS_RUNNER_PREPARE_JOB_TIMEOUT_SECONDS,
    ACTIONS_RUNNER_CONTAINER_HOOK_TEMPLATE, ENV_USE_KUBE_SCHEDULER,
    ENV_DISABLE_IMAGE_PULL, ENV_HOOK_INSPECT_IMAGE,
    ENV_HOOK_CONTAINER_STEP_ENTRYPOINT, DEBUG_HOOK (see HookConfig)

Examples:
    echo '{"command": "cleanup_job", "state": {"jobPod": "runner-workflow"}}' | k8s-hook

    k8s-hook version
"""

from __future__ import annotations

import logging
import signal
import sys
from collections.abc import Callable

import pydantic
import typer

from k8s_hook import __version__, console, logger
from k8s_hook.client import HookClient
from k8s_hook.commands.cleanup_job import cleanup_job
from k8s_hook.commands.prepare_job import prepare_job
from k8s_hook.commands.run_container_step import run_container_step
from k8s_hook.commands.run_script_step import run_script_step
from k8s_hook.config import HookConfig
from k8s_hook.errors import ClusterConnectionError, HookError
from k8s_hook.types import ContainerHookInput, parse_hook_input

CommandHandler = Callable[[ContainerHookInput, HookClient, HookConfig], int]

COMMANDS: dict[str, CommandHandler] = {
    "prepare_job": prepare_job,
    "cleanup_job": cleanup_job,
    "run_container_step": run_container_step,
    "run_script_step": run_script_step,
}

app = typer.Typer(
    help="Kubernetes container hook for self-hosted CI job runners.",
    add_completion=False,
)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def run_hook(raw: str, cfg: HookConfig, client: HookClient | None = None) -> int:
    """Parse one hook request and run its command.

    Args:
        raw: JSON request read from stdin.
        cfg: Hook configuration.
        client: Connected client to use, or None to connect a new one.

    Returns:
        Process exit status.
    """
    try:
        hook_input = parse_hook_input(raw, strict=cfg.debug)
    except pydantic.ValidationError as err:
        console.print(f"[red]\u274c Unexpected JSON structure: {err}[/red]")
        return 1
    redacted = {"args": {"registry": True, "container": {"registry"}}}
    logger.debug("Hook input: %s", hook_input.model_dump_json(by_alias=True, exclude=redacted))

    handler = COMMANDS.get(hook_input.command)
    if handler is None:
        logger.error("Unknown command %r", hook_input.command)
        return 1

    if client is None:
        client = HookClient(cfg)
        try:
            client.connect()
        except ClusterConnectionError as err:
            logger.error("Failed to talk to kubernetes: %s", err)
            return 1

    previous = {sig: signal.signal(sig, lambda *_: client.cancel()) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        return handler(hook_input, client, cfg)
    except HookError as err:
        logger.error("%s failed: %s", hook_input.command, err, exc_info=cfg.debug)
        return 1
    finally:
        for sig, handler_before in previous.items():
            signal.signal(sig, handler_before)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Run the command piped in on stdin."""
    if ctx.invoked_subcommand is not None:
        return
    cfg = HookConfig()
    _configure_logging(cfg.debug)
    if sys.stdin.isatty():
        console.print("No piped input detected. This hook is intended to be run by the job runner.")
        return
    raise typer.Exit(run_hook(sys.stdin.read(), cfg))


@app.command()
def version() -> None:
    """Print the hook version."""
    typer.echo(f"k8s-hook version: {__version__}")


def run() -> None:
    """Console script entry point."""
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    run()
