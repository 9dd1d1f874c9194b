"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.document_exporter import export_blocks
from adapters.http_client import build_async_client
from core.config import ENV_PREFIX, AppSettings, write_user_env_vars
from core.domain.models import RichTextBlock

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str) -> tuple[bool, str]:
    try:
        async with build_async_client() as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_pdf() -> tuple[bool, str]:
    """Attempt to generate a minimal PDF to detect WeasyPrint issues."""

    try:
        with tempfile.TemporaryDirectory() as tmp:
            export_blocks(
                title="doctor",
                blocks=[RichTextBlock(type="paragraph", content="ok")],
                output_path=Path(tmp) / "_doctor_test.pdf",
            )
        return True, "OK"
    except Exception as exc:
        return False, str(exc)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="Workforce AI Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    if settings.ai_api_key:
        table.add_row("AI key", "OK", "Remote AI enabled")
    else:
        table.add_row("AI key", "MISSING", "Run `workforce doctor setup-ai`")
    table.add_row("AI base_url", "OK", settings.ai_base_url)
    table.add_row("AI model", "OK", f"{settings.ai_model} / images: {settings.ai_image_model}")
    table.add_row("Store", "OK" if settings.store_url else "OPTIONAL", settings.store_url or "JSON snapshots only")

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http(f"{settings.holidays_base_url.rstrip('/')}/AvailableCountries"))
    table.add_row("Holidays API", "OK" if ok_http else "FAIL", detail_http)

    # PDF
    ok_pdf, detail_pdf = _check_pdf()
    table.add_row("WeasyPrint PDF", "OK" if ok_pdf else "FAIL", detail_pdf)

    _console.print(table)

    if not ok_pdf:
        _console.print(
            "\n[yellow]Note:[/yellow] When PDF export fails, `workforce report` falls back to HTML."
        )


@app.command(name="setup-ai")
def setup_ai() -> None:
    """Interactive AI setup (stores config in the user config .env)."""

    provider = typer.prompt(
        "AI provider",
        default="gemini",
        show_default=True,
    ).strip().lower()

    presets: dict[str, dict[str, str]] = {
        "gemini": {
            f"{ENV_PREFIX}AI_BASE_URL": "https://generativelanguage.googleapis.com/v1beta/openai/",
            f"{ENV_PREFIX}AI_MODEL": "gemini-2.5-flash",
        },
        "openai": {f"{ENV_PREFIX}AI_BASE_URL": "https://api.openai.com/v1", f"{ENV_PREFIX}AI_MODEL": "gpt-4o-mini"},
        "ollama": {f"{ENV_PREFIX}AI_BASE_URL": "http://localhost:11434/v1", f"{ENV_PREFIX}AI_MODEL": "llama3"},
    }

    values = presets.get(provider, {}).copy()
    if not values:
        _console.print("[yellow]Unknown provider preset. You can still enter custom values.[/yellow]")

    base_url = typer.prompt("AI base URL", default=values.get(f"{ENV_PREFIX}AI_BASE_URL", ""), show_default=True).strip()
    model = typer.prompt("AI model", default=values.get(f"{ENV_PREFIX}AI_MODEL", ""), show_default=True).strip()
    api_key = typer.prompt("AI API key", hide_input=True, confirmation_prompt=False).strip()

    if not base_url or not model:
        raise typer.BadParameter("base_url and model are required")

    env_path = write_user_env_vars(
        {
            f"{ENV_PREFIX}AI_BASE_URL": base_url,
            f"{ENV_PREFIX}AI_MODEL": model,
            f"{ENV_PREFIX}AI_API_KEY": api_key,
        }
    )

    _console.print(f"[green]Saved AI config to:[/green] {env_path}")
