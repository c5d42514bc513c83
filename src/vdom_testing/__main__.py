import asyncio
import importlib
import json
import logging
import os
import sys
from typing import Any

import click
from dotenv import load_dotenv

from vdom_testing.interaction import flush_promises
from vdom_testing.mount import mount
from vdom_testing.runtime import ReactiveRuntime

load_dotenv()

logger = logging.getLogger("vdom_testing")

LOG_FORMAT = "[%(levelname)s] %(message)s"


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.strip().upper())
    if not isinstance(level, int):
        level = logging.WARNING
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)


def _load_component(target: str) -> Any:
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Expected MODULE:COMPONENT, got {target!r}")
    component = importlib.import_module(module_name)
    for part in attr.split("."):
        component = getattr(component, part)
    return component


def _split_stub(value: str) -> tuple[str, str]:
    """Split ``SELECTOR=MARKUP`` on the first ``=`` outside an attribute selector."""
    depth = 0
    for i, char in enumerate(value):
        match char:
            case "[":
                depth += 1
            case "]":
                depth = max(depth - 1, 0)
            case "=" if depth == 0:
                selector = value[:i].strip()
                if selector:
                    return selector, value[i + 1 :]
    raise ValueError(f"Expected SELECTOR=MARKUP, got {value!r}")


async def _render(
    component: Any, props: dict[str, Any], dom_stubs: dict[str, str], as_text: bool, settle: bool
) -> str:
    runtime = ReactiveRuntime()
    wrapper = mount(component, props, dom_stubs=dom_stubs, runtime=runtime)
    try:
        if settle:
            await flush_promises(runtime)
        return wrapper.text() if as_text else wrapper.html()
    finally:
        wrapper.unmount()


@click.command()
@click.argument("target")
@click.option("--props", help="Component props as a JSON object.", default=None, type=str)
@click.option(
    "--stub",
    "stubs",
    help="Replace elements matching SELECTOR with MARKUP after mounting. Repeatable.",
    multiple=True,
    metavar="SELECTOR=MARKUP",
)
@click.option("--text", "as_text", help="Print text content instead of markup.", is_flag=True, default=False)
@click.option(
    "--settle/--no-settle",
    help="Flush pending async work and re-renders before printing.",
    default=True,
    show_default=True,
)
def main(target, props, stubs, as_text, settle):
    """Mount TARGET (MODULE:COMPONENT) in a fresh document and print what it renders."""
    _configure_logging(os.getenv("VDOM_TESTING_LOG_LEVEL", "WARNING"))

    try:
        props_value = json.loads(props) if props else {}
    except json.JSONDecodeError as e:
        click.echo(f"Error: --props is not valid JSON: {e}", err=True)
        sys.exit(1)
    if not isinstance(props_value, dict):
        click.echo("Error: --props must be a JSON object", err=True)
        sys.exit(1)

    try:
        dom_stubs = dict(_split_stub(stub) for stub in stubs)
        component = _load_component(target)
    except (ImportError, AttributeError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        output = asyncio.run(_render(component, props_value, dom_stubs, as_text, settle))
    except Exception as e:
        logger.debug("Rendering %s failed", target, exc_info=True)
        click.echo(f"Error: rendering {target} failed: {e}", err=True)
        sys.exit(1)
    click.echo(output)


if __name__ == "__main__":
    main()
