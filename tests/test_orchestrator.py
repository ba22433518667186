"""Tests for the invocation orchestrator."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from selection2speech.archive import AudioArchiver
from selection2speech.config import Configuration
from selection2speech.errors import ErrorOrigin, Result
from selection2speech.model import DEFAULT_VOICE_ID
from selection2speech.orchestrator import Orchestrator, Stage
from selection2speech.ui import PlaybackHandle
from tests.conftest import MemoryContentStore, counter_clock

AUDIO = b"ID3 audio bytes"


def _config(**overrides) -> Configuration:
    values = dict(synthesis_api_key="xi-key", rewrite_api_key="sk-key", rewrite_enabled=False, rewrite_prompt="Be natural.")
    values.update(overrides)
    return Configuration(**values)


def _rewriter(result: Result) -> MagicMock:
    rewriter = MagicMock()
    rewriter.rewrite = AsyncMock(return_value=result)
    return rewriter


def _synthesizer(result: Result = None) -> MagicMock:
    synthesizer = MagicMock()
    synthesizer.synthesize = AsyncMock(return_value=result or Result.success(AUDIO))
    return synthesizer


def _orchestrator(notifier, rewriter=None, synthesizer=None, store=None, **kwargs) -> Orchestrator:
    return Orchestrator(
        rewriter=rewriter or _rewriter(Result.success("unused")),
        synthesizer=synthesizer or _synthesizer(),
        archiver=AudioArchiver(store or MemoryContentStore(), clock=counter_clock()),
        notifier=notifier,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_plain_selection_is_synthesized_archived_and_presented(notifier):
    rewriter = _rewriter(Result.success("should not be used"))
    synthesizer = _synthesizer()
    store = MemoryContentStore()
    orchestrator = _orchestrator(notifier, rewriter, synthesizer, store)

    report = await orchestrator.invoke("Hello world", _config())

    rewriter.rewrite.assert_not_awaited()
    synthesizer.synthesize.assert_awaited_once_with("Hello world", "xi-key", DEFAULT_VOICE_ID)
    assert report.artifact.storage_path.endswith(".mp3")
    assert store.files[report.artifact.storage_path] == AUDIO
    assert isinstance(report.handle, PlaybackHandle)
    assert report.handle.data == AUDIO
    assert report.stages == [Stage.IDLE, Stage.SYNTHESIZE, Stage.ARCHIVE, Stage.PRESENT, Stage.IDLE]
    assert not report.aborted
    assert notifier.messages == []


@pytest.mark.asyncio
async def test_rewritten_text_is_what_gets_synthesized(notifier):
    rewriter = _rewriter(Result.success("Hi there, friend."))
    synthesizer = _synthesizer()
    orchestrator = _orchestrator(notifier, rewriter, synthesizer)

    report = await orchestrator.invoke("Hello world", _config(rewrite_enabled=True))

    rewriter.rewrite.assert_awaited_once_with("Hello world", "sk-key", "Be natural.")
    synthesizer.synthesize.assert_awaited_once_with("Hi there, friend.", "xi-key", DEFAULT_VOICE_ID)
    assert report.spoken_text == "Hi there, friend."
    assert report.stages[:3] == [Stage.IDLE, Stage.REWRITE_TEXT, Stage.SYNTHESIZE]


@pytest.mark.asyncio
async def test_rewrite_service_error_aborts_before_synthesis(notifier):
    rewriter = _rewriter(Result.failure(ErrorOrigin.SERVICE, "bad key"))
    synthesizer = _synthesizer()
    store = MemoryContentStore()
    orchestrator = _orchestrator(notifier, rewriter, synthesizer, store)

    report = await orchestrator.invoke("Hello world", _config(rewrite_enabled=True))

    synthesizer.synthesize.assert_not_awaited()
    assert report.aborted
    assert report.handle is None
    assert store.files == {}
    assert any("bad key" in message for message in notifier.messages)
    assert report.errors[0].origin is ErrorOrigin.SERVICE


@pytest.mark.asyncio
async def test_empty_rewrite_is_not_synthesized(notifier):
    synthesizer = _synthesizer()
    orchestrator = _orchestrator(notifier, _rewriter(Result.success("   ")), synthesizer)

    report = await orchestrator.invoke("Hello world", _config(rewrite_enabled=True))

    synthesizer.synthesize.assert_not_awaited()
    assert report.aborted
    assert report.errors[0].origin is ErrorOrigin.PARSE


@pytest.mark.asyncio
async def test_synthesis_failure_aborts_without_archiving(notifier):
    store = MemoryContentStore()
    synthesizer = _synthesizer(Result.failure(ErrorOrigin.NETWORK, "Issue calling https://api.elevenlabs.io"))
    orchestrator = _orchestrator(notifier, synthesizer=synthesizer, store=store)

    report = await orchestrator.invoke("Hello world", _config())

    assert report.aborted
    assert report.stages == [Stage.IDLE, Stage.SYNTHESIZE, Stage.ABORTED]
    assert store.files == {}
    assert store.created_folders == []
    assert report.handle is None


@pytest.mark.asyncio
async def test_archive_failure_still_presents_audio(notifier):
    presenter = MagicMock(side_effect=lambda data: PlaybackHandle(data=data))
    orchestrator = _orchestrator(notifier, store=MemoryContentStore(fail_writes=True), presenter=presenter)

    report = await orchestrator.invoke("Hello world", _config())

    presenter.assert_called_once_with(AUDIO)
    assert report.handle.data == AUDIO
    assert report.artifact is None
    assert not report.aborted
    assert report.errors[0].origin is ErrorOrigin.FILESYSTEM
    assert len(notifier.messages) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("selection", ["", "   \n"])
async def test_empty_selection_does_nothing(notifier, selection):
    synthesizer = _synthesizer()
    orchestrator = _orchestrator(notifier, synthesizer=synthesizer)

    report = await orchestrator.invoke(selection, _config())

    synthesizer.synthesize.assert_not_awaited()
    assert report.stages == [Stage.IDLE]
    assert report.handle is None
    assert notifier.messages == ["No text selected"]


@pytest.mark.asyncio
async def test_placeholder_synthesis_key_is_configuration_error(notifier):
    synthesizer = _synthesizer()
    orchestrator = _orchestrator(notifier, synthesizer=synthesizer)

    report = await orchestrator.invoke("Hello", _config(synthesis_api_key="default"))

    synthesizer.synthesize.assert_not_awaited()
    assert report.aborted
    assert report.errors[0].origin is ErrorOrigin.CONFIGURATION


@pytest.mark.asyncio
async def test_rewrite_key_only_required_when_rewriting(notifier):
    rewriter = _rewriter(Result.success("x"))
    orchestrator = _orchestrator(notifier, rewriter)

    plain = await orchestrator.invoke("Hello", _config(rewrite_api_key=""))
    rewritten = await orchestrator.invoke("Hello", _config(rewrite_api_key="", rewrite_enabled=True))

    assert not plain.aborted
    assert rewritten.aborted
    assert rewritten.errors[0].origin is ErrorOrigin.CONFIGURATION
    rewriter.rewrite.assert_not_awaited()


@pytest.mark.asyncio
async def test_stage_callback_follows_the_pipeline(notifier):
    seen = []
    orchestrator = _orchestrator(notifier, _rewriter(Result.success("Hi")), on_stage=seen.append)

    await orchestrator.invoke("Hello", _config(rewrite_enabled=True))

    assert seen == [Stage.REWRITE_TEXT, Stage.SYNTHESIZE, Stage.ARCHIVE, Stage.PRESENT, Stage.IDLE]


@pytest.mark.asyncio
async def test_concurrent_invocations_are_independent(notifier):
    store = MemoryContentStore()
    orchestrator = _orchestrator(notifier, store=store)
    config = _config()

    first, second = await asyncio.gather(
        orchestrator.invoke("one", config),
        orchestrator.invoke("two", config),
    )

    assert first.artifact.storage_path != second.artifact.storage_path
    assert len(store.files) == 2
    assert first.stages == second.stages
    assert config == _config()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"synthesis_api_key": "xi-kéy"},
        {"synthesis_api_key": "xi-key\n"},
        {"rewrite_api_key": "sk-“key”", "rewrite_enabled": True},
    ],
)
async def test_non_ascii_keys_are_configuration_errors(notifier, overrides):
    rewriter = _rewriter(Result.success("Hi"))
    synthesizer = _synthesizer()
    orchestrator = _orchestrator(notifier, rewriter, synthesizer)

    report = await orchestrator.invoke("Hello world", _config(**overrides))

    assert report.aborted
    assert report.errors[0].origin is ErrorOrigin.CONFIGURATION
    assert "printable ASCII" in notifier.messages[0]
    rewriter.rewrite.assert_not_awaited()
    synthesizer.synthesize.assert_not_awaited()


@pytest.mark.asyncio
async def test_non_ascii_rewrite_key_ignored_when_not_rewriting(notifier):
    orchestrator = _orchestrator(notifier)

    report = await orchestrator.invoke("Hello world", _config(rewrite_api_key="sk-kéy"))

    assert not report.aborted
