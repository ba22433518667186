"""
CLI module for selection2speech package.

Contains command-line argument parsing and the glue between the terminal
(standing in for the editor host) and the orchestrator.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, replace
from pathlib import Path
from typing import List, Optional

import regex as re
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .archive import AudioArchiver
from .config import FIELD_TYPES, ConfigurationStore, parse_field_value, with_environment
from .host import JsonSettingsStorage, TextSelection, VaultContentStore
from .model import DEFAULT_VOICE_ID, KNOWN_VOICES, SpeechSynthesizer
from .orchestrator import Orchestrator, Stage
from .rewrite import DEFAULT_BASE_URL, DEFAULT_TEXT_MODEL, TextRewriter
from .ui import ConsoleNotifier, progress_context

logger = logging.getLogger(__name__)

SETTINGS_DIR = ".selection2speech"
SETTINGS_FILE = "data.json"

STAGE_LABELS = {
    Stage.IDLE: "Done",
    Stage.REWRITE_TEXT: "Rewriting text...",
    Stage.SYNTHESIZE: "Synthesizing audio...",
    Stage.ARCHIVE: "Saving audio...",
    Stage.PRESENT: "Preparing playback...",
    Stage.ABORTED: "Aborted",
}


# ----------------------------
# Text processing
# ----------------------------
def strip_markdown(raw: str) -> str:
    """Strip Markdown formatting so only the spoken text remains."""
    txt = re.sub(r"```.*?```", "", raw, flags=re.DOTALL)
    txt = re.sub(r"`([^`]*)`", r"\1", txt)
    txt = re.sub(r"!\[.*?\]\(.*?\)", "", txt)
    txt = re.sub(r"\[([^\]]+)\]\((?:[^)]+)\)", r"\1", txt)
    txt = re.sub(r"^\s{0,3}#{1,6}\s*", "", txt, flags=re.MULTILINE)
    txt = re.sub(r"^\s{0,3}[-*+]\s+", "", txt, flags=re.MULTILINE)
    txt = re.sub(r"^\s{0,3}\d+\.\s+", "", txt, flags=re.MULTILINE)
    txt = re.sub(r"\n{3,}", "\n\n", txt)
    txt = re.sub(r"[ \t]{2,}", " ", txt)
    return txt.strip()


def mask_secret(value: str) -> str:
    if len(value) <= 8:
        return value
    return f"{value[:3]}…{value[-4:]}"


def settings_path(vault: Path) -> Path:
    return vault / SETTINGS_DIR / SETTINGS_FILE


def configure_logging(verbose: int, console: Console) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


# ----------------------------
# CLI setup
# ----------------------------
def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="selection2speech",
        description="Speak a block of text with ElevenLabs, optionally rewritten by OpenAI first.",
    )
    parser.add_argument("--vault", type=Path, default=Path(os.getenv("SELECTION2SPEECH_VAULT", ".")),
                        help="Folder holding settings and the audio archive (default: current directory).")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log output (-v info, -vv debug).")
    sub = parser.add_subparsers(dest="command", required=True)

    speak = sub.add_parser("speak", help="Convert the selected text to audio.")
    source = speak.add_mutually_exclusive_group()
    source.add_argument("--text", help="Text to speak (default: read from stdin).")
    source.add_argument("--file", help="Text/Markdown file to speak.")
    speak.add_argument("--strip-markdown", action="store_true",
                       help="Remove Markdown formatting before speaking.")
    speak.add_argument("--voice", default=os.getenv("ELEVENLABS_VOICE_ID", DEFAULT_VOICE_ID),
                       help="ElevenLabs voice id.")
    speak.add_argument("--text-model", default=os.getenv("OPENAI_TEXT_MODEL", DEFAULT_TEXT_MODEL),
                       help="Chat model used for rewriting.")
    speak.add_argument("--rewrite-url", default=os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL),
                       help="Base URL of the chat-completion service.")
    rewrite = speak.add_mutually_exclusive_group()
    rewrite.add_argument("--rewrite", dest="rewrite", action="store_true", default=None,
                         help="Rewrite into natural speech for this run.")
    rewrite.add_argument("--no-rewrite", dest="rewrite", action="store_false",
                         help="Skip rewriting for this run.")
    speak.add_argument("--play-audio", action="store_true",
                       help="Play the audio after synthesis (macOS/Linux only).")

    config = sub.add_parser("config", help="Show or change persisted settings.")
    config_sub = config.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("show", help="Print the current settings.")
    set_cmd = config_sub.add_parser("set", help="Change one setting and save it.")
    set_cmd.add_argument("field", choices=list(FIELD_TYPES))
    set_cmd.add_argument("value")

    sub.add_parser("voices", help="Print a curated list of voice ids and exit.")
    return parser


def read_selection(args) -> TextSelection:
    if args.text is not None:
        text = args.text
    elif args.file:
        path = Path(args.file)
        if not path.exists():
            print(f"Input file not found: {path}", file=sys.stderr)
            sys.exit(2)
        text = path.read_text(encoding="utf-8")
    else:
        text = sys.stdin.read()
    if args.strip_markdown:
        text = strip_markdown(text)
    return TextSelection(text)


# ----------------------------
# Commands
# ----------------------------
def cmd_speak(args, store: ConfigurationStore, console: Console) -> int:
    selection = read_selection(args)
    config = with_environment(store.load())
    if args.rewrite is not None:
        config = replace(config, rewrite_enabled=args.rewrite)

    notifier = ConsoleNotifier(console)
    with progress_context(console) as progress:
        task = progress.add_task("Starting...", total=None)
        orchestrator = Orchestrator(
            rewriter=TextRewriter(model=args.text_model, base_url=args.rewrite_url),
            synthesizer=SpeechSynthesizer(),
            archiver=AudioArchiver(VaultContentStore(args.vault)),
            notifier=notifier,
            voice_id=args.voice,
            on_stage=lambda stage: progress.update(task, description=STAGE_LABELS[stage]),
        )
        report = asyncio.run(orchestrator.invoke(selection.get_selection(), config))

    if report.handle is None:
        return 1
    if report.artifact is not None:
        print(f"Saved audio to: {args.vault / report.artifact.storage_path}")
    if args.play_audio:
        code = report.handle.play()
        if code != 0:
            notifier.notify(f"Playback failed (player exit code {code}); is an audio player installed?")
            return 1
    return 0


def cmd_config(args, store: ConfigurationStore) -> int:
    config = store.load()
    if args.config_command == "show":
        shown = asdict(config)
        for name in ("synthesis_api_key", "rewrite_api_key"):
            shown[name] = mask_secret(shown[name])
        print(json.dumps(shown, indent=2))
        return 0

    try:
        value = parse_field_value(args.field, args.value)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2
    saved = store.update(config, args.field, value)
    if not saved.ok:
        print(saved.error.message, file=sys.stderr)
        return 1
    print(f"Saved {args.field}.")
    return 0


def cmd_voices() -> int:
    print("Known voices (availability may vary by account):")
    for name, voice_id in KNOWN_VOICES.items():
        print(f" - {name}: {voice_id}")
    return 0


# ----------------------------
# Main application logic
# ----------------------------
def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the selection2speech CLI application."""
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    console = Console(stderr=True)
    configure_logging(args.verbose, console)

    if args.command == "voices":
        return cmd_voices()

    store = ConfigurationStore(JsonSettingsStorage(settings_path(args.vault)))
    if args.command == "config":
        return cmd_config(args, store)
    return cmd_speak(args, store, console)
