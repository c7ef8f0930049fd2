"""Rich terminal rendering for evaluation results, evaluators and capabilities."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.text import Text

from prompt_tracker import api_types, capabilities
from prompt_tracker.runner import EvaluationOutcome

console = Console()


def _score_style(score: float, passed: bool) -> str:
    if passed:
        return "bold green"
    return "bold yellow" if score >= 50 else "bold red"


def render_outcomes(outcomes: list[EvaluationOutcome], summary: dict[str, float] | None = None) -> None:
    if not outcomes:
        console.print("[yellow]No evaluators ran.[/yellow]")
        return

    for outcome in outcomes:
        header = Text()
        header.append(f"[{outcome.evaluator_key}] ", style="bold cyan")
        if outcome.error:
            header.append("error", style="bold red")
            console.print(header)
            console.print(f"     {outcome.error}", style="red")
            console.print()
            continue

        result = outcome.result
        header.append(f"{result.score:g}/{result.score_max}", style=_score_style(result.score, result.passed))
        header.append("  passed" if result.passed else "  failed", style="green" if result.passed else "red")
        if outcome.evaluation_mode != "scored":
            header.append(f"  ({outcome.evaluation_mode})", style="dim")
        console.print(header)
        if result.feedback:
            for line in result.feedback.splitlines():
                console.print(f"     {line}", style="dim", markup=False, highlight=False)
        console.print()

    if summary and "score" in summary:
        console.print(
            f"Mean score {summary['score']:.2f} "
            f"(std {summary['score:std']:.2f}), pass rate {summary['pass_rate']:.0%}",
            style="bold",
        )


def render_evaluators(entries: dict[str, dict[str, Any]]) -> None:
    if not entries:
        console.print("[yellow]No matching evaluators.[/yellow]")
        return

    console.print(f"{len(entries)} evaluators")
    console.print()
    for key, entry in entries.items():
        cls = entry["evaluator_class"]
        line = Text()
        line.append(f"{key}", style="bold cyan")
        line.append(f"  {entry['name']}", style="bold")
        line.append(f"  [{entry['category']}]", style="dim")
        console.print(line)
        console.print(f"     {entry['description']}", style="dim")
        apis = sorted(a if isinstance(a, str) else a.value for a in cls.COMPATIBLE_APIS)
        console.print(f"     APIs: {', '.join(apis)}  Testables: {', '.join(cls.COMPATIBLE_TESTABLES)}", style="dim")
        if entry["default_config"]:
            defaults = ", ".join(f"{k}={v!r}" for k, v in entry["default_config"].items())
            console.print(f"     Defaults: {defaults}", style="dim", markup=False, highlight=False)
        console.print()


def render_capabilities(provider: str, api: str) -> None:
    api_type = api_types.from_config(provider, api)
    title = api_type.display_name if api_type else f"{provider}/{api} (unknown)"
    console.print(Text(title, style="bold"))
    tools = capabilities.builtin_tools_for(provider, api)
    features = capabilities.features_for(provider, api)
    console.print(f"  Built-in tools: {', '.join(tools) or 'none'}")
    console.print(f"  Features: {', '.join(features) or 'none'}")
    console.print(f"  Playground panels: {', '.join(capabilities.playground_ui_for(provider, api))}")


def render_capability_matrix() -> None:
    for provider, apis in capabilities.to_dict().items():
        console.print(Text(capabilities.provider_name(provider), style="bold cyan"))
        for api in apis:
            render_capabilities(provider, api)
        console.print()
