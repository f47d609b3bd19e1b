"""Command-line interface for Live Analyzer.

Provides commands for:
- analyze: Replay an audio file through a live analysis session
- note: Show the note, octave and tuning for a frequency
- chord: Match a set of note names against the chord templates
"""

import json
import time
import warnings
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="live-analyzer",
    help="Stable note, chord, key and tempo detection for live audio",
    rich_markup_mode="markdown",
)
console = Console()


def _describe(snapshot) -> Dict[str, Any]:
    """Displayed values of a snapshot, as plain data."""
    from .core import format_note

    return {
        "note": format_note(snapshot.note) if snapshot.note else None,
        "cents": snapshot.note.cents if snapshot.note else None,
        "chord": snapshot.chord.name if snapshot.chord else None,
        "key": snapshot.key.name if snapshot.key else None,
        "bpm": snapshot.tempo.bpm,
        "bpm_confidence": round(snapshot.tempo.confidence, 2),
    }


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Input audio file (WAV, MP3, FLAC, ...)"),
    frame_size: int = typer.Option(
        2048, "--frame-size", "-f", help="Samples per analysis buffer"
    ),
    sensitivity: str = typer.Option(
        "medium", "--sensitivity", "-s", help="Signal gate sensitivity: low/medium/high"
    ),
    key: bool = typer.Option(True, "--key/--no-key", help="Enable key detection"),
    tempo: bool = typer.Option(True, "--tempo/--no-tempo", help="Enable tempo detection"),
    offset: float = typer.Option(0.0, "--offset", help="Seconds to skip at the start"),
    duration: Optional[float] = typer.Option(
        None, "--duration", "-d", help="Seconds of audio to analyze"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output the timeline as JSON (for scripting)"
    ),
):
    """Replay an audio file buffer by buffer and print every change of the
    stabilized note, chord, key or tempo.

    **Examples:**

        live-analyzer analyze guitar.wav

        live-analyzer analyze song.mp3 --no-tempo --json
    """
    from .input import AudioLoader
    from .analysis import TempoAnalyzer
    from .inference import KeyExtractorHandle, ProfileKeyExtractor
    from .session import AnalysisSession, config_for_sensitivity

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    try:
        config = config_for_sensitivity(sensitivity, frame_size=frame_size)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    try:
        loader = AudioLoader(target_sr=config.sample_rate)
        audio, sr = loader.load(str(input_file), offset=offset, duration=duration)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not json_output:
        length = loader.get_duration(audio, sr)
        console.print(f"[blue]Loaded:[/blue] {input_file} ({length:.2f}s, {sr}Hz)")

    key_handle = None
    if key:
        key_handle = KeyExtractorHandle(ProfileKeyExtractor())
        init = key_handle.initialize()
        if not init.ok:
            console.print(f"[yellow]Key detection disabled: {init.error}[/yellow]")
            key_handle = None

    tempo_analyzer = TempoAnalyzer(sr=sr) if tempo else None

    session = AnalysisSession(
        config,
        key_extractor=key_handle,
        tempo_analyzer=tempo_analyzer,
    )

    timeline: List[Dict[str, Any]] = []
    previous: Optional[Dict[str, Any]] = None
    started = time.time()

    session.start()
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        for now, frame in loader.iter_frames(audio, sr, frame_size=config.frame_size):
            state = _describe(session.tick(frame, now))
            # Cents move on every update; only report changes of what is displayed
            comparable = {k: v for k, v in state.items() if k != "cents"}
            if comparable != previous:
                timeline.append({"time": round(offset + now, 3), **state})
                previous = comparable
    session.stop()

    for warning in caught:
        console.print(f"[yellow]Warning: {warning.message}[/yellow]")

    if json_output:
        print(json.dumps({"file": str(input_file), "timeline": timeline}, indent=2))
        return

    table = Table(title="Detected changes")
    table.add_column("Time (s)", justify="right")
    table.add_column("Note")
    table.add_column("Chord")
    table.add_column("Key")
    table.add_column("BPM", justify="right")

    for row in timeline:
        bpm = "--" if row["bpm"] is None else f"{row['bpm']} ({row['bpm_confidence']:.0%})"
        table.add_row(
            f"{row['time']:.2f}",
            row["note"] or "--",
            row["chord"] or "--",
            row["key"] or "--",
            bpm,
        )

    console.print(table)
    console.print(f"[green]Done in {time.time() - started:.2f}s[/green]")


@app.command()
def note(
    frequency: float = typer.Argument(..., help="Frequency in Hz"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Convert a frequency to note name, octave and cents offset."""
    from .core import frequency_to_note, format_cents, tuning_status

    info = frequency_to_note(frequency)
    if info is None:
        console.print(f"[red]No note for frequency: {frequency}[/red]")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps({**asdict(info), "status": tuning_status(info.cents)}))
        return

    colors = {"in_tune": "green", "close": "yellow", "out_of_tune": "red"}
    color = colors[tuning_status(info.cents)]
    console.print(
        f"[bold]{info.name}[/bold] [{color}]{format_cents(info.cents)}[/{color}] "
        f"({info.frequency:.2f} Hz)"
    )


@app.command()
def chord(
    notes: List[str] = typer.Argument(..., help="Note names, e.g. C E G"),
    min_confidence: float = typer.Option(
        0.7, "--min-confidence", "-c", help="Minimum template similarity (0-1)"
    ),
):
    """Match a set of notes against the chord templates."""
    from .core import PITCH_NAMES
    from .inference import chroma_from_notes, match_chord

    unknown = [n for n in notes if n not in PITCH_NAMES]
    if unknown:
        console.print(f"[red]Unknown note names: {', '.join(unknown)}[/red]")
        console.print(f"Use one of: {' '.join(PITCH_NAMES)}")
        raise typer.Exit(1)

    match = match_chord(chroma_from_notes(notes), min_confidence)
    if match is None:
        console.print("[yellow]No chord above the confidence threshold[/yellow]")
        raise typer.Exit(1)

    console.print(
        f"[bold]{match.name}[/bold] ({', '.join(match.notes)}) "
        f"confidence {match.confidence:.2f}"
    )


def main():
    app()


if __name__ == "__main__":
    main()
