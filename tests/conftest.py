import pytest
import torch
import os
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock

# Add project root to path to ensure imports work correctly
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from streamgen.domain.entities.generation_config import PenaltyConfig, SamplingConfig
from streamgen.utils.error_manager import UnknownSpecialTokenError

VOCAB = {"<pad>": 0, "hello": 1, "world": 2, "<eos>": 3, "foo": 4, "bar": 5}


def one_hot_logits(token_id: int, vocab_size: int = len(VOCAB), high: float = 10.0) -> torch.Tensor:
    """Logits that make ``token_id`` the clear argmax."""
    logits = torch.zeros(vocab_size)
    logits[token_id] = high
    return logits


class ScriptedModel:
    """Deterministic model stub returning scripted logits per forward call.

    Script entries are token ids (turned into one-hot logits) or tensors.
    Calls past the end of the script repeat the last entry. Every forward
    and reset is recorded in ``events`` in call order.
    """

    def __init__(self, script, vocab_size: int = len(VOCAB)):
        self.script = list(script)
        self.vocab_size = vocab_size
        self.inputs = []
        self.events = []
        self.resets = 0
        self.fail_on_call = None
        self.fail_with = None

    def forward(self, token_ids):
        call_index = len(self.inputs)
        self.inputs.append(list(token_ids))
        self.events.append("forward")

        if self.fail_on_call is not None and call_index == self.fail_on_call:
            raise self.fail_with

        entry = self.script[min(call_index, len(self.script) - 1)]
        if isinstance(entry, torch.Tensor):
            return entry.clone()
        return one_hot_logits(entry, self.vocab_size)

    def reset_cache(self):
        self.resets += 1
        self.events.append("reset")


class DictTokenizer:
    """Whitespace tokenizer over a fixed vocabulary."""

    def __init__(self, vocab=None):
        self.vocab = dict(vocab or VOCAB)
        self.inverse = {v: k for k, v in self.vocab.items()}

    def encode(self, text):
        return [self.vocab[word] for word in text.split()]

    def decode(self, token_id):
        return self.inverse[token_id]

    def token_to_id(self, token):
        if token not in self.vocab:
            raise UnknownSpecialTokenError(f"cannot find the {token} token", token=token)
        return self.vocab[token]

    def id_to_tokens(self, token_ids):
        return ["▁" + self.inverse[t] for t in token_ids]


@pytest.fixture
def scripted_model():
    """Factory for scripted model stubs."""
    return ScriptedModel


@pytest.fixture
def dict_tokenizer():
    """Whitespace tokenizer over the shared test vocabulary."""
    return DictTokenizer()


@pytest.fixture
def greedy_config():
    return SamplingConfig(temperature=None, top_p=None, seed=0)


@pytest.fixture
def no_penalty():
    return PenaltyConfig(penalty=1.0, last_n=64)


@pytest.fixture
def mock_sink():
    """Output sink that records every call."""
    return MagicMock()


@pytest.fixture
def mock_hf_tokenizer():
    """Create a mock HuggingFace tokenizer for testing."""
    tokenizer = MagicMock()
    tokenizer.encode.return_value = [1, 2]
    tokenizer.decode.side_effect = lambda ids, skip_special_tokens=False: " ".join(
        {1: "hello", 2: "world"}.get(i, "") for i in ids
    )
    tokenizer.get_vocab.return_value = {"hello": 1, "world": 2, "<|endoftext|>": 3}
    tokenizer.convert_ids_to_tokens.side_effect = lambda ids: [f"tok{i}" for i in ids]
    return tokenizer


@pytest.fixture
def mock_hf_model():
    """Create a mock HuggingFace causal LM for testing.

    The returned logits have one row per submitted token and the returned
    ``past_key_values`` is a fresh sentinel per call.
    """
    model = MagicMock()

    def forward(input_ids=None, past_key_values=None, use_cache=True, return_dict=True):
        seq_len = input_ids.shape[1]
        logits = torch.arange(seq_len * 8, dtype=torch.float32).reshape(1, seq_len, 8)
        return SimpleNamespace(logits=logits, past_key_values=object())

    model.side_effect = forward
    return model
