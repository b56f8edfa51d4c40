"""The transform matrix: which glue each exported function becomes.

The complete state space is four cells keyed by (processing context, file
role). Each cell is a :class:`CellPolicy` that either keeps the function and
appends a registration, or replaces the function with a proxy stub.

| processing \\ role | main              | renderer           |
|-------------------|-------------------|--------------------|
| main              | register handler  | broadcast stub     |
| renderer          | invoke stub       | register listener  |
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from ..assembler import TextEdit
from ..config import BridgeConfig
from ..errors import ChannelCollisionError
from ..extractor import ExportedFunction, FunctionForm
from ..naming import Side, TransformContext, channel_name, reply_channel
from .templates import render_template

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    REGISTER_HANDLER = "register_handler"
    BROADCAST = "broadcast"
    INVOKE = "invoke"
    REGISTER_LISTENER = "register_listener"


class EditMode(str, Enum):
    APPEND = "append"
    REPLACE = "replace"


@dataclass(frozen=True)
class CellPolicy:
    """Code generation policy of one matrix cell."""

    strategy: Strategy
    mode: EditMode
    host_symbol: str

    def template_name(self, is_async: bool) -> str:
        return f"{self.strategy.value}_{'async' if is_async else 'sync'}.js.j2"


TRANSFORM_MATRIX: Mapping[Tuple[Side, Side], CellPolicy] = MappingProxyType(
    {
        (Side.MAIN, Side.MAIN): CellPolicy(Strategy.REGISTER_HANDLER, EditMode.APPEND, "ipcMain"),
        (Side.MAIN, Side.RENDERER): CellPolicy(Strategy.BROADCAST, EditMode.REPLACE, "webContents"),
        (Side.RENDERER, Side.MAIN): CellPolicy(Strategy.INVOKE, EditMode.REPLACE, "ipcRenderer"),
        (Side.RENDERER, Side.RENDERER): CellPolicy(Strategy.REGISTER_LISTENER, EditMode.APPEND, "ipcRenderer"),
    }
)


def policy_for(context: TransformContext) -> CellPolicy:
    return TRANSFORM_MATRIX[(context.processing, context.role)]


@dataclass(frozen=True)
class ChannelBinding:
    """A function together with the channel and strategy chosen for it."""

    name: str
    channel: str
    strategy: Strategy
    is_async: bool
    is_default: bool


@dataclass
class GenerationPlan:
    """Everything the generator decided for one file.

    ``required_symbols`` is handed to the import merger; it holds host API
    names in the order they were first needed.
    """

    edits: List[TextEdit] = field(default_factory=list)
    required_symbols: List[str] = field(default_factory=list)
    bindings: List[ChannelBinding] = field(default_factory=list)

    def require(self, symbol: str) -> None:
        if symbol not in self.required_symbols:
            self.required_symbols.append(symbol)


def stub_head(fn: ExportedFunction, params: str) -> str:
    """Spell the head of a stub so it fits the span it replaces."""

    prefix = "async " if fn.is_async else ""
    if fn.form is FunctionForm.ARROW:
        return f"{prefix}({params}) =>"
    if fn.form is FunctionForm.FUNCTION_EXPRESSION:
        return f"{prefix}function ({params})"
    default = "default " if fn.is_default else ""
    return f"export {default}{prefix}function {fn.name}({params})"


def _render_edits(
    fn: ExportedFunction,
    policy: CellPolicy,
    channel: str,
    params: str,
    config: BridgeConfig,
    source_length: int,
) -> List[TextEdit]:
    rendered = render_template(
        policy.template_name(fn.is_async),
        channel=channel,
        reply_channel=reply_channel(channel),
        name=fn.name,
        head=stub_head(fn, params),
        timeout_ms=config.broadcast_timeout_ms,
    )
    if policy.mode is EditMode.REPLACE:
        return [TextEdit(fn.start, fn.end, rendered.rstrip("\n"))]
    edits = []
    if fn.is_anonymous and fn.name_insert_at is not None:
        # The kept function needs a binding for the registration to call.
        edits.append(TextEdit(fn.name_insert_at, fn.name_insert_at, f" {fn.name}"))
    edits.append(TextEdit(source_length, source_length, "\n" + rendered))
    return edits


def generate(
    functions: List[ExportedFunction],
    context: TransformContext,
    base_name: str,
    *,
    source_length: int,
    typescript: bool = False,
    config: Optional[BridgeConfig] = None,
    file_id: Optional[str] = None,
) -> GenerationPlan:
    """Produce the edits and required host symbols for ``functions``."""

    config = config or BridgeConfig()
    policy = policy_for(context)
    params = "...args: any[]" if typescript and config.type_annotations else "...args"
    plan = GenerationPlan()
    seen: Dict[str, ExportedFunction] = {}

    for fn in functions:
        channel = channel_name(base_name, fn.name_segment, fn.body)
        previous = seen.get(channel)
        if previous is not None:
            message = f"Functions '{previous.name}' and '{fn.name}' derive the same channel {channel}"
            if config.fail_on_channel_collision:
                raise ChannelCollisionError(message, path=file_id)
            logger.warning(message)
        seen[channel] = fn

        plan.edits.extend(_render_edits(fn, policy, channel, params, config, source_length))
        plan.require(policy.host_symbol)
        plan.bindings.append(
            ChannelBinding(
                name=fn.name,
                channel=channel,
                strategy=policy.strategy,
                is_async=fn.is_async,
                is_default=fn.is_default,
            )
        )
        logger.debug("%s -> %s (%s)", fn.name, channel, policy.strategy.value)
    return plan


__all__ = [
    "Strategy",
    "EditMode",
    "CellPolicy",
    "TRANSFORM_MATRIX",
    "ChannelBinding",
    "GenerationPlan",
    "policy_for",
    "stub_head",
    "generate",
]
