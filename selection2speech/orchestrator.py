"""
Orchestrator module for selection2speech package.

Runs one invocation end to end: optional rewrite, synthesis, archiving and
presentation, each stage awaited before the next one starts. Invocations
share nothing but the read-only Configuration.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .archive import AudioArchiver, AudioArtifact
from .config import Configuration, is_header_safe, is_placeholder
from .errors import ErrorOrigin, ServiceError
from .host import Notifier
from .model import DEFAULT_VOICE_ID, SpeechSynthesizer
from .rewrite import TextRewriter
from .ui import PlaybackHandle, present

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    IDLE = "idle"
    REWRITE_TEXT = "rewrite_text"
    SYNTHESIZE = "synthesize"
    ARCHIVE = "archive"
    PRESENT = "present"
    ABORTED = "aborted"


@dataclass
class InvocationReport:
    stages: List[Stage] = field(default_factory=lambda: [Stage.IDLE])
    spoken_text: Optional[str] = None
    artifact: Optional[AudioArtifact] = None
    handle: Optional[PlaybackHandle] = None
    errors: List[ServiceError] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.stages[-1] is Stage.ABORTED


class Orchestrator:
    def __init__(
        self,
        rewriter: TextRewriter,
        synthesizer: SpeechSynthesizer,
        archiver: AudioArchiver,
        notifier: Notifier,
        voice_id: str = DEFAULT_VOICE_ID,
        presenter: Callable[[bytes], PlaybackHandle] = present,
        on_stage: Optional[Callable[[Stage], None]] = None,
    ):
        self.rewriter = rewriter
        self.synthesizer = synthesizer
        self.archiver = archiver
        self.notifier = notifier
        self.voice_id = voice_id
        self.presenter = presenter
        self.on_stage = on_stage

    def _enter(self, report: InvocationReport, stage: Stage) -> None:
        logger.debug("Stage %s -> %s", report.stages[-1].value, stage.value)
        report.stages.append(stage)
        if self.on_stage:
            self.on_stage(stage)

    def _surface(self, report: InvocationReport, error: ServiceError) -> bool:
        """Report an error; returns True when the invocation must stop."""
        logger.error("%s error: %s", error.origin.value, error.message)
        self.notifier.notify(f"Error :: {error.message}")
        report.errors.append(error)
        if error.fatal:
            self._enter(report, Stage.ABORTED)
        return error.fatal

    def _missing_credentials(self, config: Configuration) -> Optional[ServiceError]:
        if is_placeholder(config.synthesis_api_key):
            return ServiceError(ErrorOrigin.CONFIGURATION, "ElevenLabs API key is not set")
        if config.rewrite_enabled and is_placeholder(config.rewrite_api_key):
            return ServiceError(ErrorOrigin.CONFIGURATION, "OpenAI API key is not set but rewriting is enabled")
        if not is_header_safe(config.synthesis_api_key):
            return ServiceError(ErrorOrigin.CONFIGURATION, "ElevenLabs API key contains characters that are not printable ASCII")
        if config.rewrite_enabled and not is_header_safe(config.rewrite_api_key):
            return ServiceError(ErrorOrigin.CONFIGURATION, "OpenAI API key contains characters that are not printable ASCII")
        return None

    async def invoke(self, selection: str, config: Configuration) -> InvocationReport:
        report = InvocationReport()
        if not selection or not selection.strip():
            self.notifier.notify("No text selected")
            return report

        missing = self._missing_credentials(config)
        if missing is not None:
            self._surface(report, missing)
            return report

        text = selection
        if config.rewrite_enabled:
            self._enter(report, Stage.REWRITE_TEXT)
            rewritten = await self.rewriter.rewrite(selection, config.rewrite_api_key, config.rewrite_prompt)
            if rewritten.error is not None:
                self._surface(report, rewritten.error)
                return report
            if not rewritten.value or not rewritten.value.strip():
                self._surface(report, ServiceError(ErrorOrigin.PARSE, "Rewrite returned no text"))
                return report
            text = rewritten.value
        report.spoken_text = text

        self._enter(report, Stage.SYNTHESIZE)
        audio = await self.synthesizer.synthesize(text, config.synthesis_api_key, self.voice_id)
        if audio.error is not None:
            self._surface(report, audio.error)
            return report

        self._enter(report, Stage.ARCHIVE)
        archived = await self.archiver.archive(audio.value)
        if archived.error is not None:
            if self._surface(report, archived.error):
                return report
        else:
            report.artifact = archived.value

        self._enter(report, Stage.PRESENT)
        report.handle = self.presenter(audio.value)
        self._enter(report, Stage.IDLE)
        return report
