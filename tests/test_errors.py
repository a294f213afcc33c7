"""
Tests for the error taxonomy and user-facing messages.
"""

from subtitle_pipeline.errors import (
    DecodeError,
    EngineError,
    EngineNotReadyError,
    MediaNotFoundError,
    ModelLoadError,
    ModelNotFoundError,
    PipelineIOError,
    TranscriptionCancelled,
    describe_error,
)

ALL_KINDS = [
    MediaNotFoundError, ModelNotFoundError, DecodeError, PipelineIOError,
    ModelLoadError, EngineNotReadyError, EngineError, TranscriptionCancelled,
]


def test_every_kind_has_a_distinct_title():
    titles = [cls.title for cls in ALL_KINDS]
    assert len(set(titles)) == len(titles)


def test_builtin_compatibility():
    assert isinstance(MediaNotFoundError("x"), FileNotFoundError)
    assert isinstance(PipelineIOError("x"), OSError)
    assert isinstance(EngineError("x"), RuntimeError)


def test_describe_includes_detail():
    assert describe_error(DecodeError("bad header")) == "Could not decode audio: bad header"


def test_cancellation_is_benign():
    message = describe_error(TranscriptionCancelled())
    assert message == "Processing cancelled."
    assert "error" not in message.lower()


def test_unknown_exception():
    assert describe_error(ValueError("boom")) == "Unexpected error: boom"


def test_only_cancellation_is_not_a_failure():
    assert [cls for cls in ALL_KINDS if not cls.is_failure] == [TranscriptionCancelled]
