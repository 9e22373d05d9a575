"""Bridges pair a model adapter with a completion sink."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from mac_engine.models import CompletionResult, ModelMessage, ModelRequest

# A model adapter turns a serialized prompt into a model message. It may be
# sync or async and may return a ModelMessage or an equivalent dict.
PromptExecutor = Callable[
    [ModelRequest],
    Union[ModelMessage, dict[str, Any], Awaitable[Union[ModelMessage, dict[str, Any]]]],
]

# A completion sink receives the final result of a top-level prompt once.
CompletionHandler = Callable[[CompletionResult], Union[None, Awaitable[None]]]


@dataclass
class Bridge:
    """A named model adapter plus the sink that receives its final answers.

    Attributes:
        name: Unique bridge name
        prompt_executor: The model adapter
        completion_handler: The completion sink
    """

    name: str
    prompt_executor: PromptExecutor
    completion_handler: CompletionHandler
