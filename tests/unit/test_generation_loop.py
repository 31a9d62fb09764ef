import pytest
import torch
from unittest.mock import MagicMock, patch

from streamgen.application.services.generation_loop import GenerationLoop
from streamgen.domain.entities.generation_config import PenaltyConfig, SamplingConfig
from streamgen.domain.entities.generation_state import GenerationPhase, StopReason
from streamgen.utils.error_manager import (
    EmptyPromptError,
    ModelForwardError,
    SamplingError,
    TokenizationError,
    UnknownSpecialTokenError,
)

HELLO, WORLD, EOS, FOO, BAR = 1, 2, 3, 4, 5


def make_loop(model, tokenizer, sampling=None, penalty=None, **kwargs):
    return GenerationLoop(
        model=model,
        tokenizer=tokenizer,
        sampling_config=sampling or SamplingConfig(),
        penalty_config=penalty or PenaltyConfig(penalty=1.0),
        eos_token="<eos>",
        **kwargs,
    )


class TestGenerationLoopTermination:
    """Stopping on end-of-sequence and on the token budget."""

    def test_eos_on_first_step(self, scripted_model, dict_tokenizer):
        model = scripted_model([EOS], vocab_size=4)
        tokenizer = type(dict_tokenizer)({"hello": 1, "world": 2, "<eos>": 3})
        loop = make_loop(model, tokenizer)

        stream = loop.generate("hello", max_tokens=2)
        fragments = list(stream)

        assert fragments == []
        assert stream.result.generated_tokens == 1
        assert stream.result.stop_reason == StopReason.EOS
        assert stream.result.token_ids == (EOS,)
        assert model.inputs == [[HELLO]]

    def test_stops_at_max_tokens(self, scripted_model, dict_tokenizer):
        model = scripted_model([WORLD, FOO, BAR, EOS])
        loop = make_loop(model, dict_tokenizer)

        stream = loop.generate("hello world", max_tokens=3)

        assert list(stream) == ["world", "foo", "bar"]
        assert stream.result.stop_reason == StopReason.MAX_LENGTH
        assert stream.result.generated_tokens == 3
        assert stream.result.text == "worldfoobar"
        assert stream.result.prompt_tokens == 2

    def test_zero_budget_runs_no_forward_pass(self, scripted_model, dict_tokenizer):
        model = scripted_model([WORLD])
        loop = make_loop(model, dict_tokenizer)

        stream = loop.generate("hello", max_tokens=0)

        assert list(stream) == []
        assert model.inputs == []
        assert model.resets == 1
        assert stream.result.generated_tokens == 0
        assert stream.result.stop_reason == StopReason.MAX_LENGTH

    def test_eos_is_counted_but_not_decoded(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO, EOS])
        tokenizer = MagicMock(wraps=dict_tokenizer)
        loop = make_loop(model, tokenizer)

        result = loop.generate_text("hello", max_tokens=10)

        assert result.fragments == ("foo",)
        assert result.generated_tokens == 2
        tokenizer.decode.assert_called_once_with(FOO)

    def test_negative_budget_rejected(self, scripted_model, dict_tokenizer):
        loop = make_loop(scripted_model([EOS]), dict_tokenizer)
        with pytest.raises(ValueError, match="max_tokens"):
            loop.generate("hello", max_tokens=-1)


class TestGenerationLoopContext:
    """What is submitted to the model at each step."""

    def test_prompt_then_single_tokens(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO, BAR, WORLD, EOS])
        loop = make_loop(model, dict_tokenizer)

        list(loop.generate("hello world hello", max_tokens=10))

        assert model.inputs == [[HELLO, WORLD, HELLO], [FOO], [BAR], [WORLD]]

    def test_sequence_holds_prompt_and_generated_ids(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO, EOS])
        loop = make_loop(model, dict_tokenizer)

        stream = loop.generate("world", max_tokens=10)
        list(stream)

        assert stream.sequence == [WORLD, FOO, EOS]
        assert stream.generated_token_ids == [FOO, EOS]


class TestGenerationLoopCacheHygiene:
    """The model cache is reset exactly once per prompt, never mid-prompt."""

    def test_single_reset_after_completion(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO, BAR, EOS])
        loop = make_loop(model, dict_tokenizer)

        stream = loop.generate("hello", max_tokens=10)
        next(stream)
        next(stream)
        assert model.resets == 0

        with pytest.raises(StopIteration):
            next(stream)
        assert model.events == ["forward", "forward", "forward", "reset"]
        assert stream.phase == GenerationPhase.CACHE_RESET

    def test_reset_between_prompts(self, scripted_model, dict_tokenizer):
        model = scripted_model([EOS])
        loop = make_loop(model, dict_tokenizer)

        for prompt in ["hello", "world", "foo bar"]:
            list(loop.generate(prompt, max_tokens=5))

        assert model.events == ["forward", "reset"] * 3

    def test_exhausted_stream_is_not_restartable(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO, EOS])
        loop = make_loop(model, dict_tokenizer)

        stream = loop.generate("hello", max_tokens=5)
        assert list(stream) == ["foo"]
        assert list(stream) == []
        assert model.resets == 1
        assert len(model.inputs) == 2

    def test_close_aborts_with_single_reset(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO, BAR, EOS])
        loop = make_loop(model, dict_tokenizer)

        stream = loop.generate("hello", max_tokens=5)
        next(stream)
        stream.close()
        stream.close()

        assert model.resets == 1
        assert stream.result.stop_reason == StopReason.ABORTED
        assert stream.result.fragments == ("foo",)

    def test_new_prompt_closes_unfinished_stream(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO])
        loop = make_loop(model, dict_tokenizer)

        first = loop.generate("hello", max_tokens=5)
        next(first)
        second = loop.generate("world", max_tokens=1)

        assert first.result.stop_reason == StopReason.ABORTED
        assert model.events == ["forward", "reset"]

        list(second)
        assert model.events == ["forward", "reset", "forward", "reset"]
        assert model.inputs[1] == [WORLD]

    def test_empty_prompt_raises_and_resets(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO])
        loop = make_loop(model, dict_tokenizer)

        with pytest.raises(EmptyPromptError):
            loop.generate("   ", max_tokens=5)

        assert model.inputs == []
        assert model.resets == 1

    def test_encode_failure_raises_and_resets(self, scripted_model, dict_tokenizer, monkeypatch):
        model = scripted_model([FOO])
        loop = make_loop(model, dict_tokenizer)

        def failing_encode(text):
            raise TokenizationError("cannot encode", prompt=text)

        monkeypatch.setattr(dict_tokenizer, "encode", failing_encode)

        with pytest.raises(TokenizationError):
            loop.generate("hello", max_tokens=3)

        assert model.inputs == []
        assert model.resets == 1


class TestGenerationLoopSampling:
    """Sampling behavior observed through the loop."""

    def test_greedy_follows_filtered_argmax(self, scripted_model, dict_tokenizer):
        # hello (1) narrowly beats world (2) until the penalty applies
        logits = torch.tensor([0.0, 1.05, 1.0, -5.0, 0.0, 0.0])
        model = scripted_model([logits])
        loop = make_loop(model, dict_tokenizer, penalty=PenaltyConfig(penalty=1.2, last_n=8))

        stream = loop.generate("hello", max_tokens=1)

        assert list(stream) == ["world"]
        assert loop.sampler.draws == 0

    def test_seeded_runs_are_identical(self, scripted_model, dict_tokenizer):
        logits = torch.tensor([0.3, 1.0, 0.9, -1.0, 0.8, 0.7])
        sampling = SamplingConfig(temperature=0.9, top_p=0.95, seed=42)
        penalty = PenaltyConfig(penalty=1.1, last_n=4)

        runs = []
        for _ in range(2):
            loop = make_loop(scripted_model([logits]), dict_tokenizer, sampling=sampling, penalty=penalty)
            runs.append([loop.generate_text(p, max_tokens=20).token_ids for p in ("hello", "world foo")])

        assert runs[0] == runs[1]

    def test_random_stream_continues_across_prompts(self, scripted_model, dict_tokenizer):
        logits = torch.zeros(6)
        logits[3] = -20.0
        sampling = SamplingConfig(temperature=1.0, seed=9)

        loop = make_loop(scripted_model([logits]), dict_tokenizer, sampling=sampling)
        loop.generate_text("hello", max_tokens=4)
        loop.generate_text("hello", max_tokens=4)
        assert loop.sampler.draws == 8


class TestGenerationLoopErrors:
    """Error propagation from collaborators."""

    def test_unknown_eos_fails_at_construction(self, scripted_model, dict_tokenizer):
        with pytest.raises(UnknownSpecialTokenError) as exc_info:
            GenerationLoop(
                model=scripted_model([EOS]),
                tokenizer=dict_tokenizer,
                sampling_config=SamplingConfig(),
                penalty_config=PenaltyConfig(),
                eos_token="<|endoftext|>",
            )
        assert exc_info.value.is_session_fatal

    def test_forward_failure_propagates_after_reset(self, scripted_model, dict_tokenizer):
        model = scripted_model([FOO])
        model.fail_on_call = 1
        model.fail_with = ModelForwardError("out of memory")
        loop = make_loop(model, dict_tokenizer)

        stream = loop.generate("hello", max_tokens=5)
        assert next(stream) == "foo"
        with pytest.raises(ModelForwardError):
            next(stream)

        assert model.resets == 1
        assert stream.result.stop_reason == StopReason.ERROR
        assert list(stream) == []

    def test_degenerate_logits_abort_prompt(self, scripted_model, dict_tokenizer):
        model = scripted_model([torch.full((6,), float("nan"))])
        loop = make_loop(model, dict_tokenizer)

        with pytest.raises(SamplingError):
            list(loop.generate("hello", max_tokens=5))
        assert model.resets == 1

    def test_none_collaborators_rejected(self, dict_tokenizer, scripted_model):
        with pytest.raises(AssertionError, match="Model cannot be None"):
            make_loop(None, dict_tokenizer)
        with pytest.raises(AssertionError, match="Tokenizer cannot be None"):
            make_loop(scripted_model([EOS]), None)


class TestGenerationLoopPerformance:
    """Timings are reported to an optional tracker."""

    def test_tracker_receives_step_timings(self, scripted_model, dict_tokenizer):
        tracker = MagicMock()
        loop = make_loop(scripted_model([FOO, EOS]), dict_tokenizer, performance_tracker=tracker)

        loop.generate_text("hello world", max_tokens=5)

        token_counts = [c.kwargs["num_tokens"] for c in tracker.track_model_call.call_args_list]
        assert token_counts == [2, 1]
        assert tracker.track_sampling.call_count == 2
        assert tracker.track_decode.call_count == 1

    def test_throughput_is_derived_from_result(self, scripted_model, dict_tokenizer):
        loop = make_loop(scripted_model([FOO, BAR, EOS]), dict_tokenizer)
        result = loop.generate_text("hello", max_tokens=5)

        assert result.elapsed_seconds >= 0
        if result.elapsed_seconds > 0:
            assert result.tokens_per_second == pytest.approx(3 / result.elapsed_seconds)

    def test_throughput_logged_without_debug(self, scripted_model, dict_tokenizer):
        loop = make_loop(scripted_model([FOO, EOS]), dict_tokenizer, debug_mode=False)

        with patch.object(loop._streamgen_logger, "info") as mock_info:
            loop.generate_text("hello", max_tokens=5)

        messages = [c.args[0] for c in mock_info.call_args_list]
        assert any("Prompt finished (eos): 2 tokens" in m and "token/s" in m for m in messages)
