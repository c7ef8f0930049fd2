"""CLI entry point for prompt-tracker."""

from __future__ import annotations

import json
import logging
from typing import Optional

import click
from rich.console import Console

console = Console()


@click.group()
@click.version_option(package_name="prompt-tracker-evals")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    """prompt-tracker - Normalize LLM responses and score them with evaluators."""
    from prompt_tracker.config import load_env

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_env()


# ---------------------------------------------------------------------------
# prompt-tracker env
# ---------------------------------------------------------------------------


@cli.group(invoke_without_command=True)
@click.pass_context
def env(ctx):
    """Show or configure judge settings and API keys.

    Run without arguments to see current status.
    Use `prompt-tracker env set KEY value` to save to ~/.prompt_tracker/.env.
    """
    if ctx.invoked_subcommand is not None:
        return

    from prompt_tracker.config import PERSISTENT_ENV, check_env

    statuses = check_env()
    console.print("Environment Status:")
    console.print()
    for var, is_set, info in statuses:
        status = "[green]set[/green]" if is_set else "[red]not set[/red]"
        console.print(f"  {var}: {status}")
        console.print(f"    {info['description']}")
        console.print(f"    Used by: {', '.join(info['required_by'])}", style="dim")
        console.print()

    console.print(f"Config file: {PERSISTENT_ENV}", style="dim")


@env.command("set")
@click.argument("key")
@click.argument("value")
def env_set(key: str, value: str):
    """Save a setting to ~/.prompt_tracker/.env.

    KEY: one of the variables listed by `prompt-tracker env`
    VALUE: the value to store
    """
    from prompt_tracker.config import VALID_KEYS, save_key

    key = key.upper()
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key: {key}[/red]")
        console.print(f"Valid keys: {', '.join(sorted(VALID_KEYS))}")
        raise SystemExit(1)

    try:
        path = save_key(key, value)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)
    console.print(f"Saved {key} to {path}")


# ---------------------------------------------------------------------------
# prompt-tracker evaluators / capabilities
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--api", default=None, help="Only evaluators compatible with this API (e.g. openai_responses).")
@click.option("--testable", default=None, type=click.Choice(["prompt_version", "assistant"]),
              help="Only evaluators that can run against this testable type.")
@click.option("--category", default=None, type=click.Choice(["single_response", "conversational"]))
def evaluators(api: Optional[str], testable: Optional[str], category: Optional[str]):
    """List registered evaluators."""
    from prompt_tracker import api_types
    from prompt_tracker.registry import EvaluatorRegistry
    from prompt_tracker.renderer import render_evaluators

    if api is not None and not api_types.valid(api):
        console.print(f"[red]Unknown API: {api}[/red]")
        raise SystemExit(1)

    registry = EvaluatorRegistry()
    entries = registry.all()
    if api is not None:
        entries = {k: v for k, v in entries.items() if k in registry.for_api(api)}
    if testable is not None:
        entries = {k: v for k, v in entries.items() if k in registry.for_testable(testable)}
    if category is not None:
        entries = {k: v for k, v in entries.items() if k in registry.by_category(category)}
    render_evaluators(entries)


@cli.command()
@click.argument("provider", required=False)
@click.argument("api", required=False)
def capabilities(provider: Optional[str], api: Optional[str]):
    """Show built-in tools, features and playground panels.

    PROVIDER API: e.g. `openai responses`; omit both for the full matrix
    """
    from prompt_tracker.renderer import render_capabilities, render_capability_matrix

    if provider and api:
        render_capabilities(provider, api)
    elif provider or api:
        console.print("[red]Pass both PROVIDER and API, or neither.[/red]")
        raise SystemExit(1)
    else:
        render_capability_matrix()


# ---------------------------------------------------------------------------
# prompt-tracker evaluate
# ---------------------------------------------------------------------------


def _load_configs(evaluator_keys: tuple[str, ...], config_json: Optional[str], configs_file: Optional[str]):
    from prompt_tracker.models import EvaluatorConfig

    configs = []
    if configs_file:
        with open(configs_file) as f:
            raw = json.load(f)
        if isinstance(raw, dict):
            raw = [raw]
        configs.extend(EvaluatorConfig.from_dict(item) for item in raw)
    extra = json.loads(config_json) if config_json else {}
    configs.extend(EvaluatorConfig(evaluator_key=key, config=dict(extra)) for key in evaluator_keys)
    return configs


@cli.command()
@click.argument("payload", type=click.Path(exists=True, dir_okay=False))
@click.option("--api", default=None, help="API that produced PAYLOAD (e.g. openai_assistants). Omit for pre-normalized data.")
@click.option("--evaluator", "-e", "evaluator_keys", multiple=True, help="Evaluator key; repeatable.")
@click.option("--config", "config_json", default=None, help="JSON config applied to every --evaluator.")
@click.option("--configs", "configs_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="JSON file with a list of evaluator configs.")
@click.option("--single-turn", is_flag=True, help="Treat PAYLOAD as a single response, not a conversation.")
@click.option("--out", "out_path", default=None, help="Append results to this JSONL file.")
@click.option("--threads", type=int, default=None, help="Concurrent evaluators (default: PROMPT_TRACKER_MAX_WORKERS).")
def evaluate(
    payload: str,
    api: Optional[str],
    evaluator_keys: tuple[str, ...],
    config_json: Optional[str],
    configs_file: Optional[str],
    single_turn: bool,
    out_path: Optional[str],
    threads: Optional[int],
):
    """Score a provider payload with one or more evaluators.

    PAYLOAD: JSON file with the raw response or conversation
    """
    from prompt_tracker.config import Settings
    from prompt_tracker.renderer import render_outcomes
    from prompt_tracker.runner import JsonlEvaluationStore, aggregate_results, run_evaluations

    try:
        configs = _load_configs(evaluator_keys, config_json, configs_file)
        if not configs:
            console.print("[red]Error: pass --evaluator or --configs[/red]")
            raise SystemExit(1)
        with open(payload) as f:
            data = json.load(f)

        settings = Settings.from_env()
        if not settings.use_real_llm:
            console.print("Judge calls are mocked (PROMPT_TRACKER_USE_REAL_LLM is not 'true').", style="dim")

        store = JsonlEvaluationStore(out_path) if out_path else None
        outcomes = run_evaluations(
            data,
            configs,
            api=api,
            single_turn=single_turn,
            settings=settings,
            store=store,
            num_threads=threads,
            raise_errors=False,
        )
        render_outcomes(outcomes, aggregate_results(outcomes))
    except SystemExit:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    if any(o.error for o in outcomes):
        raise SystemExit(1)
