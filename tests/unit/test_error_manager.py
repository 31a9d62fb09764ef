import pytest

from streamgen.utils.error_manager import (
    EmptyPromptError,
    ErrorCategory,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    ModelError,
    ModelForwardError,
    SamplingError,
    StreamgenError,
    TokenizationError,
    UnknownSpecialTokenError,
)
from streamgen.utils.exception_handlers import handle_exceptions, handle_model_errors


class TestErrorTaxonomy:
    """Severity decides whether an error ends the session."""

    @pytest.mark.parametrize("error_class,fatal", [
        (ModelError, True),
        (ModelForwardError, True),
        (UnknownSpecialTokenError, True),
        (TokenizationError, False),
        (EmptyPromptError, False),
        (SamplingError, False),
    ])
    def test_session_fatal(self, error_class, fatal):
        assert error_class("boom").is_session_fatal is fatal

    def test_subclass_relationships(self):
        assert issubclass(EmptyPromptError, TokenizationError)
        assert issubclass(UnknownSpecialTokenError, TokenizationError)
        assert issubclass(ModelForwardError, ModelError)

    def test_categories(self):
        assert ModelForwardError("x").category == ErrorCategory.MODEL
        assert EmptyPromptError("x").category == ErrorCategory.TOKENIZE
        assert SamplingError("x").category == ErrorCategory.SAMPLING
        assert ErrorCode.get_category(ErrorCode.UNKNOWN_ERROR) == ErrorCategory.UNKNOWN

    def test_explicit_severity_overrides_default(self):
        error = TokenizationError("x", severity=ErrorSeverity.CRITICAL)
        assert error.is_session_fatal


class TestStreamgenError:
    """Base error behavior."""

    def test_message_includes_code_and_cause(self):
        cause = KeyError("missing")
        error = StreamgenError("lookup failed", code=ErrorCode.GENERATION_FAILED, cause=cause)

        assert str(error).startswith("GENERATION_FAILED: lookup failed")
        assert "Caused by: KeyError" in str(error)

    def test_context_points_at_raise_site(self):
        error = SamplingError("bad logits")
        assert error.context.function == "test_context_points_at_raise_site"

    def test_to_dict(self):
        error = EmptyPromptError("empty", prompt="")
        data = error.to_dict()

        assert data["code"] == "TOKENIZE_EMPTY_PROMPT"
        assert data["severity"] == "ERROR"
        assert data["additional_info"] == {"prompt": ""}
        assert "cause" not in data

    def test_context_current_without_frames(self):
        context = ErrorContext.current(stack_depth=10_000)
        assert context.function == "unknown"


class TestExceptionHandlers:
    """Decorators translate foreign exceptions into the taxonomy."""

    def test_wraps_foreign_exception(self):
        @handle_exceptions(error_message="Step failed", error_code=ErrorCode.GENERATION_FAILED)
        def step():
            raise RuntimeError("kaput")

        with pytest.raises(StreamgenError) as exc_info:
            step()

        assert exc_info.value.code == ErrorCode.GENERATION_FAILED
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "Step failed in" in exc_info.value.message

    def test_passes_project_errors_through(self):
        original = SamplingError("degenerate")

        @handle_model_errors()
        def step():
            raise original

        with pytest.raises(SamplingError) as exc_info:
            step()
        assert exc_info.value is original

    def test_model_errors_default_to_load_failure(self):
        @handle_model_errors()
        def load():
            raise OSError("no such file")

        with pytest.raises(ModelError) as exc_info:
            load()
        assert exc_info.value.code == ErrorCode.MODEL_LOAD_FAILED
        assert exc_info.value.is_session_fatal

    def test_return_value_is_preserved(self):
        @handle_exceptions()
        def ok():
            return 42

        assert ok() == 42
