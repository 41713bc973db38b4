"""Node behaviour backed by an external pack's runner."""
import asyncio
import functools

from loguru import logger

from ..engine.context import ExecutionContext, NodeResult
from ..engine.errors import Aborted
from ..engine.graph import Port
from ..models.schemas import NodePack, ManifestNodeSchema
from ..nodes.base import NodeBehavior, NodeDefinition
from ..nodes.registry import NodeRegistry
from .client import RunnerClient


class RemoteNode(NodeBehavior):
    """Forwards inputs and state to the pack runner and returns what it answers."""

    CATEGORY = "Custom"

    def __init__(self, entry: ManifestNodeSchema, pack: NodePack, client: RunnerClient):
        self.entry = entry
        self.pack = pack
        self.client = client

    @classmethod
    def INPUT_TYPES(cls):
        return []

    @classmethod
    def RETURN_TYPES(cls):
        return []

    async def run(self, ctx: ExecutionContext):
        payload = {
            "node_type": self.entry.type,
            "inputs": ctx.inputs,
            "state": ctx.state,
            "metadata": {"pack": self.pack.slug, "version": self.pack.version},
        }
        call = asyncio.ensure_future(self.client.call(self.pack.slug, payload))
        cancelled = asyncio.ensure_future(ctx.signal.wait())
        done, _ = await asyncio.wait({call, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        cancelled.cancel()
        if call not in done:
            call.cancel()
            raise Aborted(ctx.signal.reason)
        response = call.result()

        for line in response.logs or []:
            if isinstance(line, dict):
                ctx.log(line.get("message", line))
            else:
                ctx.log(line)
        outputs = response.outputs or {}
        if response.state is not None:
            return NodeResult(outputs=outputs, state=response.state)
        return outputs


def _ports(entries, direction: str) -> list[Port]:
    return [Port(**{**p.model_dump(), "direction": direction}) for p in entries]


def register_pack(registry: NodeRegistry, pack: NodePack, client: RunnerClient) -> list[NodeDefinition]:
    """Register one RemoteNode definition per manifest entry of ``pack``."""
    definitions = []
    for entry in pack.nodes:
        definition = NodeDefinition(
            node_type=entry.type,
            title=entry.title or entry.type,
            category=entry.category,
            description=entry.description,
            inputs=_ports(entry.inputs, "in"),
            outputs=_ports(entry.outputs, "out"),
            factory=functools.partial(RemoteNode, entry, pack, client),
            on_error=entry.on_error,
            pack=pack.name,
        )
        definitions.append(registry.add(definition))
    logger.info(f"Registered {len(definitions)} node(s) from pack {pack.slug}")
    return definitions
