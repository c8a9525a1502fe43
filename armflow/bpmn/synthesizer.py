"""
Gateway Synthesizer.

Builds a ProcessGraph from classified relations:
1. Start synthesis: activities without predecessors hang off the start
   event, behind a split (or a merged split of several groups) if needed
2. Expansion: every activity with several direct successors gets a split;
   nested branches are expanded before the split is wired
3. Convergence: branches sharing a reachable activity are joined right
   before the earliest such activity; otherwise a generic join collects
   the branch ends
4. Stitching: flows blocked by the one-in/one-out task guard are merged
   through a second-level join in front of the contested activity;
   unattached activities are anchored at their latest common predecessor
   or after the gateway that predecessor flows into
5. Cleanup and end synthesis: gateways with fewer than two meaningful
   branches are removed, a split fed by several flows gets a join in
   front of it and a join with several outputs a split behind it; every
   node left without an input hangs off the start event and every open
   end is wired to the end event

The working graph is acyclic: a flow that would close a cycle is
rejected like any other guarded flow. All working state lives in a
SynthesisContext created per call, so a synthesizer instance can be
reused and shared. Missing anchors and blocked flows are soft failures
recorded as SynthesisDiagnostic.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from armflow.arm.classifier import RelationSets
from armflow.arm.layering import (
    LevelAssignmentStrategy,
    LongestPathLevelStrategy,
    get_level_strategy,
)
from armflow.bpmn.gateways import (
    GatewayGroup,
    GatewayGroupingStrategy,
    GatewayKind,
    PairwiseGroupingStrategy,
    RelationGroupingStrategy,
    gateway_label,
    get_grouping_strategy,
    infer_group_type,
)
from armflow.bpmn.graph import (
    END_EVENT_ID,
    JOIN,
    SPLIT,
    START_EVENT_ID,
    NodeKind,
    ProcessGraph,
)

logger = logging.getLogger(__name__)

_UNSAFE_ID_CHARS = re.compile(r"[^0-9A-Za-z_]")


def sanitize_id(value: str) -> str:
    return _UNSAFE_ID_CHARS.sub("_", value)


@dataclass
class SynthesisDiagnostic:
    """A soft failure: the graph is still valid, but less structured than asked for."""

    code: str
    message: str
    location: str | None = None

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "location": self.location}


@dataclass
class SynthesisOptions:
    grouping: GatewayGroupingStrategy = field(default_factory=PairwiseGroupingStrategy)
    start_grouping: GatewayGroupingStrategy = field(default_factory=RelationGroupingStrategy)
    level_strategy: LevelAssignmentStrategy = field(default_factory=LongestPathLevelStrategy)
    allow_fallback_join: bool = True

    @classmethod
    def from_names(
        cls,
        grouping: str = "pairwise",
        level_strategy: str = "longest_path",
        allow_fallback_join: bool = True,
    ) -> SynthesisOptions:
        return cls(
            grouping=get_grouping_strategy(grouping),
            level_strategy=get_level_strategy(level_strategy),
            allow_fallback_join=allow_fallback_join,
        )


@dataclass
class SynthesisResult:
    graph: ProcessGraph
    diagnostics: list[SynthesisDiagnostic] = field(default_factory=list)
    levels: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.diagnostics


@dataclass
class SynthesisContext:
    """Per-call working state."""

    graph: ProcessGraph
    relations: RelationSets
    levels: dict[str, int]
    processed: set[str] = field(default_factory=set)
    pending: list[tuple[str, str]] = field(default_factory=list)
    start_candidates: list[str] = field(default_factory=list)
    diagnostics: list[SynthesisDiagnostic] = field(default_factory=list)

    def diagnose(self, code: str, message: str, location: str | None = None) -> None:
        logger.warning(f"{code}: {message}")
        self.diagnostics.append(SynthesisDiagnostic(code, message, location))


class GatewaySynthesizer:
    """Translates RelationSets into a frozen ProcessGraph."""

    def __init__(self, options: SynthesisOptions | None = None):
        self.options = options or SynthesisOptions()

    def synthesize(self, relations: RelationSets) -> SynthesisResult:
        levels = self.options.level_strategy.compute_levels(
            list(relations.activities), list(relations.temporal_chains)
        )
        ctx = SynthesisContext(graph=ProcessGraph(acyclic=True), relations=relations, levels=levels)

        self._add_nodes(ctx)
        self._synthesize_start(ctx)
        for activity in relations.order:
            if activity not in ctx.processed:
                self._expand(ctx, activity)
        self._attach_orphans(ctx)
        self._resolve_pending(ctx)
        self._cleanup(ctx)
        self._attach_heads(ctx)
        self._synthesize_end(ctx)
        self._cleanup(ctx)

        ctx.graph.freeze()
        logger.info(
            f"Synthesized process graph: {len(ctx.graph.nodes)} nodes, "
            f"{len(ctx.graph.flows)} flows, {len(ctx.graph.gateways())} gateways, "
            f"{len(ctx.diagnostics)} diagnostics"
        )
        return SynthesisResult(graph=ctx.graph, diagnostics=ctx.diagnostics, levels=levels)

    # ------------------------------------------------------------------
    # Node helpers
    # ------------------------------------------------------------------

    def _add_nodes(self, ctx: SynthesisContext) -> None:
        ctx.graph.add_node(START_EVENT_ID, NodeKind.START_EVENT, name="Start")
        for activity in ctx.relations.order:
            ctx.graph.add_node(activity, NodeKind.TASK, name=activity)
        ctx.graph.add_node(END_EVENT_ID, NodeKind.END_EVENT, name="End")

    def _gateway_id(self, ctx: SynthesisContext, kind: GatewayKind, role: str, anchor: str) -> str:
        base = f"{kind.value}_{role}_{sanitize_id(anchor)}"
        candidate, n = base, 2
        while candidate in ctx.graph:
            candidate = f"{base}_{n}"
            n += 1
        return candidate

    def _add_gateway(self, ctx: SynthesisContext, kind: GatewayKind, role: str, gateway_id: str) -> str:
        ctx.graph.add_node(gateway_id, kind.node_kind, name=gateway_label(kind, role), role=role)
        logger.debug(f"Added {gateway_id}")
        return gateway_id

    def _connect(self, ctx: SynthesisContext, source: str, target: str) -> bool:
        """Add a flow; a flow rejected by a graph guard is kept for stitching."""
        if ctx.graph.has_flow(source, target) or ctx.graph.add_flow(source, target):
            return True
        ctx.pending.append((source, target))
        return False

    # ------------------------------------------------------------------
    # Start / expansion
    # ------------------------------------------------------------------

    def _synthesize_start(self, ctx: SynthesisContext) -> None:
        candidates = ctx.relations.start_activities()
        ctx.start_candidates = candidates
        if not candidates:
            return
        if len(candidates) == 1:
            self._connect(ctx, START_EVENT_ID, candidates[0])
            self._expand(ctx, candidates[0])
            return

        groups = self.options.start_grouping.group(
            START_EVENT_ID, candidates, ctx.relations, ctx.levels
        )
        self._split(ctx, START_EVENT_ID, groups)

    def _expand(self, ctx: SynthesisContext, activity: str) -> None:
        if activity in ctx.processed:
            return
        ctx.processed.add(activity)

        targets = ctx.relations.direct_successors(activity)
        if not targets:
            return
        if len(targets) == 1:
            self._connect(ctx, activity, targets[0])
            self._expand(ctx, targets[0])
            return

        groups = self.options.grouping.group(activity, targets, ctx.relations, ctx.levels)
        self._split(ctx, activity, groups)

    def _split(self, ctx: SynthesisContext, anchor: str, groups: list[GatewayGroup]) -> None:
        if len(groups) == 1:
            group = groups[0]
            if group.is_singleton:
                self._connect(ctx, anchor, group.targets[0])
                self._expand(ctx, group.targets[0])
            else:
                self._split_join(ctx, anchor, anchor, [[t] for t in group.targets], group.kind)
            return

        # Several groups: one higher-level split feeding a gateway per group
        outer_kind = infer_group_type([g.targets[0] for g in groups], ctx.relations)
        outer = self._open_split(
            ctx, anchor, outer_kind, self._gateway_id(ctx, outer_kind, "Split_Merged", anchor)
        )
        if outer is None:
            return

        for group in groups:
            if group.is_singleton:
                target = group.targets[0]
                self._expand(ctx, target)
                self._connect(ctx, outer, target)
            else:
                self._split_join(ctx, outer, anchor, [[t] for t in group.targets], group.kind)

        self._converge(ctx, anchor, [g.targets for g in groups], outer_kind, role="Join_Merged")

    def _open_split(
        self, ctx: SynthesisContext, source: str, kind: GatewayKind, split_id: str
    ) -> str | None:
        graph = ctx.graph
        if graph.node(source).is_task and graph.outgoing(source):
            ctx.diagnose(
                "BLOCKED_SPLIT",
                f"'{source}' already has an outgoing flow; {split_id} not created",
                location=source,
            )
            return None
        self._add_gateway(ctx, kind, SPLIT, split_id)
        graph.add_flow(source, split_id)
        return split_id

    def _split_join(
        self,
        ctx: SynthesisContext,
        source: str,
        anchor: str,
        branches: list[list[str]],
        kind: GatewayKind,
    ) -> None:
        split_id = self._open_split(ctx, source, kind, self._gateway_id(ctx, kind, "Split", anchor))
        if split_id is None:
            return

        for branch in branches:
            for target in branch:
                self._expand(ctx, target)
                self._connect(ctx, split_id, target)

        self._converge(ctx, anchor, branches, kind)

    # ------------------------------------------------------------------
    # Convergence
    # ------------------------------------------------------------------

    def _converge(
        self,
        ctx: SynthesisContext,
        anchor: str,
        branches: list[list[str]],
        kind: GatewayKind,
        role: str = "Join",
    ) -> None:
        relations, graph = ctx.relations, ctx.graph

        reach = [set().union(*(relations.reachable(t) for t in branch)) for branch in branches]
        common = set.intersection(*reach) if reach else set()
        if not common:
            if self.options.allow_fallback_join:
                self._fallback_join(ctx, anchor, branches, kind, role)
            return

        point = relations.sort_by_order(common)[0]
        join_id = self._gateway_id(ctx, kind, role, point if role == "Join" else anchor)

        heads = [t for branch in branches for t in branch]
        flow_scope = set(heads).union(*(graph.reachable_from(t) for t in heads))
        chain_scope = set(heads).union(*reach)

        exits: list[str] = [s for s in graph.incoming(point) if s in flow_scope]
        for last in relations.direct_predecessors(point):
            if last not in chain_scope:
                continue
            exit_node = self._follow_joins(ctx, last)
            if graph.outgoing(exit_node) or exit_node in exits:
                continue
            if exit_node == point or graph.can_reach(point, exit_node):
                ctx.diagnose(
                    "BLOCKED_FLOW",
                    f"'{exit_node}' lies behind '{point}' and cannot feed its join",
                    location=exit_node,
                )
                continue
            exits.append(exit_node)
        if not exits:
            logger.debug(f"No open branch ends in front of {point}; {join_id} not created")
            return

        self._add_gateway(ctx, kind, JOIN, join_id)
        for exit_node in exits:
            graph.remove_flow(exit_node, point)
            if not graph.add_flow(exit_node, join_id):
                ctx.diagnose(
                    "BLOCKED_FLOW",
                    f"'{exit_node}' cannot feed {join_id}",
                    location=exit_node,
                )
        self._connect(ctx, join_id, point)

    def _follow_joins(self, ctx: SynthesisContext, node: str) -> str:
        """Follow single outgoing flows into join gateways; return the last node."""
        graph = ctx.graph
        seen = {node}
        while True:
            outs = graph.outgoing(node)
            if len(outs) != 1 or not graph.node(outs[0]).is_join or outs[0] in seen:
                return node
            node = outs[0]
            seen.add(node)

    def _fallback_join(
        self,
        ctx: SynthesisContext,
        anchor: str,
        branches: list[list[str]],
        kind: GatewayKind,
        role: str,
    ) -> None:
        """Generic join fed by the terminal nodes of every branch."""
        graph = ctx.graph
        sinks: list[str] = []
        for branch in branches:
            scope = set(branch).union(*(graph.reachable_from(t) for t in branch))
            for node in graph.nodes:
                if node.id not in scope or node.id in sinks or node.is_split:
                    continue
                if (node.is_task or node.is_join) and not graph.outgoing(node.id):
                    sinks.append(node.id)

        join_id = self._add_gateway(ctx, kind, JOIN, self._gateway_id(ctx, kind, role, anchor))
        for sink in sinks:
            graph.add_flow(sink, join_id)
        logger.debug(f"No convergence point for {anchor}; {join_id} collects {sinks}")

    # ------------------------------------------------------------------
    # Stitching
    # ------------------------------------------------------------------

    def _attach_orphans(self, ctx: SynthesisContext) -> None:
        """Anchor activities that were left without an incoming flow."""
        relations, graph = ctx.relations, ctx.graph
        orphans = [
            a for a in relations.order
            if not graph.incoming(a) and a not in ctx.start_candidates
        ]
        by_anchor: dict[str | None, list[str]] = {}
        for orphan in orphans:
            anchor = relations.latest_common_predecessor([orphan])
            by_anchor.setdefault(anchor, []).append(orphan)

        for anchor, members in by_anchor.items():
            self._attach_group(ctx, anchor, members)

    def _attach_group(self, ctx: SynthesisContext, anchor: str | None, members: list[str]) -> None:
        relations, graph = ctx.relations, ctx.graph
        if all(graph.incoming(m) for m in members) or all(m in ctx.start_candidates for m in members):
            return
        if anchor is None:
            ctx.diagnose("NO_ANCHOR", f"No common predecessor for {members}; group skipped")
            return

        kind = infer_group_type(members, relations)
        if not graph.outgoing(anchor):
            if len(members) == 1:
                self._connect(ctx, anchor, members[0])
                self._expand(ctx, members[0])
            else:
                self._split_join(ctx, anchor, anchor, [[m] for m in members], kind)
            return

        gateway = self._gateway_after(ctx, anchor)
        if gateway is None:
            ctx.diagnose(
                "NO_ANCHOR",
                f"'{anchor}' is taken and flows into no single-output gateway; {members} skipped",
                location=anchor,
            )
            return

        # Redirect the gateway's single output through a new split
        (successor,) = graph.outgoing(gateway)
        targets = ([successor] if graph.node(successor).is_task else []) + members
        kind = infer_group_type(targets, relations)
        split_id = self._add_gateway(ctx, kind, SPLIT, self._gateway_id(ctx, kind, "Split_After", gateway))
        graph.remove_flow(gateway, successor)
        graph.add_flow(gateway, split_id)
        graph.add_flow(split_id, successor)
        for member in members:
            self._expand(ctx, member)
            self._connect(ctx, split_id, member)

    def _gateway_after(self, ctx: SynthesisContext, anchor: str) -> str | None:
        """The gateway ``anchor`` flows straight into, if it has a single output."""
        graph = ctx.graph
        outs = graph.outgoing(anchor)
        if len(outs) != 1:
            return None
        node = graph.node(outs[0])
        if node.is_gateway and len(graph.outgoing(node.id)) == 1:
            return node.id
        return None

    def _resolve_pending(self, ctx: SynthesisContext) -> None:
        """Merge blocked flows through a second-level join in front of their target."""
        relations, graph = ctx.relations, ctx.graph

        by_target: dict[str, list[str]] = {}
        for source, target in ctx.pending:
            if graph.has_flow(source, target) or graph.can_reach(source, target):
                continue
            if source not in graph or target not in graph:
                continue
            node = graph.node(source)
            if (node.is_task or node.is_join) and graph.outgoing(source):
                ctx.diagnose(
                    "UNRESOLVED_FLOW",
                    f"'{source}' -> '{target}' dropped: '{source}' already has an outgoing flow",
                    location=source,
                )
                continue
            if graph.can_reach(target, source):
                ctx.diagnose(
                    "UNRESOLVED_FLOW",
                    f"'{source}' -> '{target}' dropped: '{target}' already leads to '{source}'",
                    location=source,
                )
                continue
            sources = by_target.setdefault(target, [])
            if source not in sources:
                sources.append(source)
        ctx.pending.clear()

        for target, sources in by_target.items():
            # earlier merges may have put a source behind this target
            sources = [s for s in sources if not graph.can_reach(target, s)]
            if not sources:
                continue
            existing = graph.incoming(target)
            if not existing and len(sources) == 1:
                graph.add_flow(sources[0], target)
                continue

            feeders = existing + sources
            kind = infer_group_type([f for f in feeders if graph.node(f).is_task], relations)
            if existing:
                join_id = self._gateway_id(ctx, kind, "Join_After", existing[0])
            else:
                join_id = self._gateway_id(ctx, kind, "Join", target)
            self._add_gateway(ctx, kind, JOIN, join_id)

            for feeder in existing:
                graph.remove_flow(feeder, target)
            for feeder in feeders:
                if not graph.add_flow(feeder, join_id):
                    ctx.diagnose("BLOCKED_FLOW", f"'{feeder}' cannot feed {join_id}", location=feeder)
            graph.add_flow(join_id, target)

    # ------------------------------------------------------------------
    # Start / end attachment and cleanup
    # ------------------------------------------------------------------

    def _open_nodes(self, ctx: SynthesisContext, incoming: bool) -> list[str]:
        graph = ctx.graph
        edges = graph.incoming if incoming else graph.outgoing
        return [
            n.id for n in graph.nodes
            if n.id not in (START_EVENT_ID, END_EVENT_ID) and not edges(n.id)
        ]

    def _attach_heads(self, ctx: SynthesisContext) -> None:
        """Hang every node left without an incoming flow off the start event."""
        graph = ctx.graph
        heads = self._open_nodes(ctx, incoming=True)
        if not heads:
            return
        for head in heads:
            if graph.node(head).is_task:
                ctx.diagnose("DETACHED", f"'{head}' had no incoming flow; attached to the start", location=head)

        current = graph.outgoing(START_EVENT_ID)
        targets = current + heads
        if len(targets) == 1:
            graph.add_flow(START_EVENT_ID, targets[0])
            return

        kind = infer_group_type([t for t in targets if graph.node(t).is_task], ctx.relations)
        split_id = self._add_gateway(ctx, kind, SPLIT, self._gateway_id(ctx, kind, "Split", START_EVENT_ID))
        for target in current:
            graph.remove_flow(START_EVENT_ID, target)
        graph.add_flow(START_EVENT_ID, split_id)
        for target in targets:
            graph.add_flow(split_id, target)

    def _synthesize_end(self, ctx: SynthesisContext) -> None:
        graph = ctx.graph
        feeders = self._open_nodes(ctx, incoming=False)
        if not feeders:
            if not graph.outgoing(START_EVENT_ID):
                graph.add_flow(START_EVENT_ID, END_EVENT_ID)
            return

        existing = graph.incoming(END_EVENT_ID)
        feeders = existing + feeders
        if len(feeders) == 1:
            graph.add_flow(feeders[0], END_EVENT_ID)
            return

        kind = infer_group_type([f for f in feeders if graph.node(f).is_task], ctx.relations)
        join_id = self._add_gateway(ctx, kind, JOIN, self._gateway_id(ctx, kind, "Join", "End"))
        for feeder in existing:
            graph.remove_flow(feeder, END_EVENT_ID)
        for feeder in feeders:
            graph.add_flow(feeder, join_id)
        graph.add_flow(join_id, END_EVENT_ID)

    def _cleanup(self, ctx: SynthesisContext) -> None:
        """
        Normalize gateways until each split has one input and each join one output.

        A split fed by several flows gets a join in front of it and a join
        with several outputs gets a split behind it. Splits with fewer than
        two outgoing and joins with fewer than two incoming flows are removed
        and bypassed.
        """
        graph = ctx.graph
        changed = True
        while changed:
            changed = False
            for node in graph.gateways():
                outs, ins = graph.outgoing(node.id), graph.incoming(node.id)
                if node.is_split and len(ins) > 1:
                    self._insert_join_before(ctx, node.id)
                elif node.is_join and len(outs) > 1:
                    self._insert_split_after(ctx, node.id)
                elif (node.is_split and len(outs) < 2) or (node.is_join and len(ins) < 2):
                    self._bypass(ctx, node.id)
                else:
                    continue
                changed = True
                break

    def _insert_join_before(self, ctx: SynthesisContext, split_id: str) -> None:
        graph = ctx.graph
        kind = GatewayKind(graph.node(split_id).kind.value)
        join_id = self._add_gateway(ctx, kind, JOIN, self._gateway_id(ctx, kind, "Join_Before", split_id))
        for source in graph.incoming(split_id):
            graph.remove_flow(source, split_id)
            graph.add_flow(source, join_id)
        graph.add_flow(join_id, split_id)
        logger.debug(f"{split_id} had several inputs; merged through {join_id}")

    def _insert_split_after(self, ctx: SynthesisContext, join_id: str) -> None:
        graph = ctx.graph
        kind = GatewayKind(graph.node(join_id).kind.value)
        split_id = self._add_gateway(ctx, kind, SPLIT, self._gateway_id(ctx, kind, "Split_After", join_id))
        for target in graph.outgoing(join_id):
            graph.remove_flow(join_id, target)
            graph.add_flow(split_id, target)
        graph.add_flow(join_id, split_id)
        logger.debug(f"{join_id} had several outputs; split through {split_id}")

    def _bypass(self, ctx: SynthesisContext, gateway_id: str) -> None:
        graph = ctx.graph
        ins, outs = graph.incoming(gateway_id), graph.outgoing(gateway_id)
        graph.remove_node(gateway_id)
        for source in ins:
            for target in outs:
                if graph.has_flow(source, target) or graph.add_flow(source, target):
                    continue
                ctx.diagnose(
                    "BLOCKED_FLOW",
                    f"'{source}' -> '{target}' lost while removing {gateway_id}",
                    location=gateway_id,
                )
        logger.debug(f"Removed redundant gateway {gateway_id}")
