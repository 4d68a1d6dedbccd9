from __future__ import annotations
import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.logging import RichHandler
from rich.markup import escape

from .clients.generation_client import GenerationClient, GenerationClientConfig
from .config import LOG_LEVEL, load_ai_config, load_client_config
from .errors import DocumentError, PreconditionError
from .render import PrintableDocument, render_payload
from .selection import SelectionState
from .types import EXAM_FORMATS, UNIT_SLOTS, AIConfig, ExamType, SubjectContext
from .workflow import GenerationWorkflow

app = typer.Typer(add_completion=False, help="Generate and render mock exams.")

TIMESTAMP_FORMATS = ["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]


@app.callback()
def main(log_level: str = typer.Option(LOG_LEVEL, help="Logging level (DEBUG, INFO, WARNING...)")):
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def make_client(ai: AIConfig, config: GenerationClientConfig) -> GenerationClient:
    return GenerationClient(ai, config)


def _unit_slot(value: str) -> str:
    slot = f"unit{value}" if value.isdigit() else value
    if slot not in UNIT_SLOTS:
        raise typer.BadParameter(f"unknown unit {value!r}; use 1-{len(UNIT_SLOTS)} or one of {', '.join(UNIT_SLOTS)}")
    return slot


def _write_pdf(printable: PrintableDocument, out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / printable.safe_filename
    out_path.write_bytes(printable.to_pdf())
    return out_path


@app.command()
def formats():
    """Show the nominal parameters of each exam format."""
    for exam_type, fmt in EXAM_FORMATS.items():
        print(f"[bold]{exam_type.label}[/bold] ({exam_type.value}): {fmt.summary}")


@app.command()
def generate(
    subject_path: str = typer.Argument(..., help="semester/branch/subject, e.g. sem3/cse/dbms"),
    topics_file: Path = typer.Option(..., "--topics", exists=True, dir_okay=False, help="JSON file with one topic list per unit"),
    exam_type: ExamType = typer.Option(ExamType.MID_SEM, "--type", help="Exam format"),
    units: List[str] = typer.Option(["unit1", "unit2"], "--unit", help="Unit to include (repeatable), e.g. --unit 1 --unit 3"),
    out_dir: Path = typer.Option(Path("."), help="Where to write the PDF"),
    save_json: Optional[Path] = typer.Option(None, help="Also save the generated exam payload here"),
    model: Optional[str] = typer.Option(None, help="Model identifier; overrides MOCKEXAM_MODEL"),
    api_key: Optional[str] = typer.Option(None, help="API key; overrides MOCKEXAM_API_KEY"),
):
    """Request a mock exam from the generation backend and save it as a PDF.

    Example:
        python -m mockexam.cli generate sem3/cse/dbms --topics topics.json --unit 1 --unit 2
    """
    ai = load_ai_config()
    ai = ai.model_copy(update={
        "model": model or ai.model,
        "credential": api_key or ai.credential,
    })
    try:
        topics = json.loads(topics_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"[red]Cannot read topics from {escape(str(topics_file))}:[/red] {escape(str(e))}")
        raise typer.Exit(code=2)
    selection = SelectionState.from_units(exam_type, [_unit_slot(u) for u in units])

    workflow = GenerationWorkflow(make_client(ai, load_client_config()))
    try:
        result = asyncio.run(workflow.generate(selection, topics, SubjectContext.from_path(subject_path)))
    except PreconditionError as e:
        print(f"[red]Cannot build request:[/red] {escape(str(e))}")
        raise typer.Exit(code=2)

    if result is None or not result.ok:
        message = workflow.error.message if workflow.error else "Something went wrong"
        print(f"[red]Generation failed:[/red] {escape(message)}")
        raise typer.Exit(code=1)

    if save_json:
        save_json.parent.mkdir(parents=True, exist_ok=True)
        save_json.write_text(json.dumps(workflow.document.to_payload(), ensure_ascii=False, indent=2), encoding="utf-8")
        print(f"Saved exam payload to {save_json}")
    out_path = _write_pdf(workflow.export(), out_dir)
    print(f"[bold]Saved exam[/bold] to {out_path}")


@app.command()
def render(
    payload_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved exam payload (JSON)"),
    out_dir: Path = typer.Option(Path("."), help="Where to write the PDF"),
    text: bool = typer.Option(False, "--text", help="Print the exam as text instead of writing a PDF"),
    generated_at: Optional[datetime] = typer.Option(None, "--at", formats=TIMESTAMP_FORMATS, help="Timestamp to stamp on the exam"),
):
    """Render a previously generated exam payload.

    Example:
        python -m mockexam.cli render exams/dbms.json --text
    """
    try:
        payload = json.loads(payload_path.read_text(encoding="utf-8"))
        printable = render_payload(payload, generated_at or datetime.now())
    except (json.JSONDecodeError, DocumentError) as e:
        print(f"[red]Cannot render {payload_path}:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    if text:
        typer.echo(printable.as_text(), nl=False)
        return
    out_path = _write_pdf(printable, out_dir)
    print(f"[bold]Saved exam[/bold] to {out_path}")


if __name__ == "__main__":
    app()
