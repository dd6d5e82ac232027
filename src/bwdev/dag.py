# dag.py
from __future__ import annotations

import os
import threading
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Hashable, Iterator, List, Optional, Set, Tuple, TypeVar

from .logging import get_logger

V = TypeVar("V", bound=Hashable)

log = get_logger(__name__)


@dataclass
class WalkResult(Generic[V]):
    """
    Outcome of Graph.walk().

    `skipped` maps a vertex that never ran to the failed vertex that blocked
    it, or to None when the walk was cancelled before it could start.
    """
    completed: List[V] = field(default_factory=list)
    failed: Dict[V, BaseException] = field(default_factory=dict)
    skipped: Dict[V, Optional[V]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


class Graph(Generic[V]):
    """
    Directed graph over hashable vertices.

    Vertices live in an arena and are addressed by insertion index; each
    index keeps a successor set (dependents) and a predecessor set
    (dependencies). An edge source -> target means target depends on source.
    """

    def __init__(self) -> None:
        self._vertices: List[V] = []
        self._index: Dict[V, int] = {}
        self._succ: List[Set[int]] = []
        self._pred: List[Set[int]] = []

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add(self, vertex: V) -> V:
        if vertex not in self._index:
            self._index[vertex] = len(self._vertices)
            self._vertices.append(vertex)
            self._succ.append(set())
            self._pred.append(set())
        return vertex

    def connect(self, source: V, target: V) -> None:
        """Add source -> target. Both vertices must already be in the graph."""
        src = self._idx(source)
        dst = self._idx(target)
        self._succ[src].add(dst)
        self._pred[dst].add(src)

    def remove_edge(self, source: V, target: V) -> None:
        src = self._idx(source)
        dst = self._idx(target)
        self._succ[src].discard(dst)
        self._pred[dst].discard(src)

    def _idx(self, vertex: V) -> int:
        try:
            return self._index[vertex]
        except KeyError:
            raise KeyError(f"vertex not in graph: {vertex!r}") from None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._vertices)

    def __contains__(self, vertex: object) -> bool:
        return vertex in self._index

    def __iter__(self) -> Iterator[V]:
        return iter(self._vertices)

    def vertices(self) -> List[V]:
        return list(self._vertices)

    def edges(self) -> List[Tuple[V, V]]:
        out: List[Tuple[V, V]] = []
        for src, targets in enumerate(self._succ):
            for dst in sorted(targets):
                out.append((self._vertices[src], self._vertices[dst]))
        return out

    def has_edge(self, source: V, target: V) -> bool:
        if source not in self._index or target not in self._index:
            return False
        return self._index[target] in self._succ[self._index[source]]

    def downstream(self, vertex: V) -> List[V]:
        """Vertices with an edge from `vertex` (its direct dependents)."""
        return [self._vertices[i] for i in sorted(self._succ[self._idx(vertex)])]

    def upstream(self, vertex: V) -> List[V]:
        """Vertices with an edge into `vertex` (its direct dependencies)."""
        return [self._vertices[i] for i in sorted(self._pred[self._idx(vertex)])]

    def has_path(self, source: V, target: V) -> bool:
        start = self._idx(source)
        goal = self._idx(target)
        seen: Set[int] = set()
        stack = list(self._succ[start])
        while stack:
            i = stack.pop()
            if i == goal:
                return True
            if i in seen:
                continue
            seen.add(i)
            stack.extend(self._succ[i])
        return False

    # ------------------------------------------------------------------
    # Transformations
    # ------------------------------------------------------------------

    def transitive_reduction(self) -> None:
        """
        Remove every edge u -> w for which another path u -> ... -> w exists.

        Reachability is unchanged. The graph must be acyclic: on a cycle every
        edge is implied by the rest of the cycle.
        """
        for u in range(len(self._vertices)):
            direct = self._succ[u]
            if len(direct) < 2:
                continue
            implied: Set[int] = set()
            stack: List[int] = []
            for v in direct:
                stack.extend(self._succ[v])
            while stack:
                i = stack.pop()
                if i in implied:
                    continue
                implied.add(i)
                stack.extend(self._succ[i])
            for w in direct & implied:
                self._succ[u].discard(w)
                self._pred[w].discard(u)

    def cycles(self) -> List[List[V]]:
        """
        One concrete cycle per strongly connected component with more than
        one vertex, plus every self-loop. Empty for an acyclic graph.
        """
        out: List[List[V]] = []
        for component in self._strongly_connected():
            if len(component) > 1:
                out.append([self._vertices[i] for i in self._cycle_within(component)])
            elif component[0] in self._succ[component[0]]:
                out.append([self._vertices[component[0]]])
        return out

    def _strongly_connected(self) -> List[List[int]]:
        # Tarjan, iterative so deep graphs do not hit the recursion limit.
        index_of: Dict[int, int] = {}
        lowlink: Dict[int, int] = {}
        on_stack: Set[int] = set()
        stack: List[int] = []
        components: List[List[int]] = []
        counter = 0

        for root in range(len(self._vertices)):
            if root in index_of:
                continue
            work: List[Tuple[int, Iterator[int]]] = [(root, iter(sorted(self._succ[root])))]
            index_of[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)

            while work:
                v, children = work[-1]
                advanced = False
                for w in children:
                    if w not in index_of:
                        index_of[w] = lowlink[w] = counter
                        counter += 1
                        stack.append(w)
                        on_stack.add(w)
                        work.append((w, iter(sorted(self._succ[w]))))
                        advanced = True
                        break
                    if w in on_stack:
                        lowlink[v] = min(lowlink[v], index_of[w])
                if advanced:
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[v])
                if lowlink[v] == index_of[v]:
                    component: List[int] = []
                    while True:
                        w = stack.pop()
                        on_stack.discard(w)
                        component.append(w)
                        if w == v:
                            break
                    components.append(sorted(component))
        return components

    def _cycle_within(self, component: List[int]) -> List[int]:
        # Shortest path back to the lowest-index vertex, staying inside the component.
        members = set(component)
        start = component[0]
        parent: Dict[int, int] = {}
        queue = deque([start])
        while queue:
            v = queue.popleft()
            for w in sorted(self._succ[v]):
                if w not in members:
                    continue
                if w == start:
                    path = [v]
                    while path[-1] != start:
                        path.append(parent[path[-1]])
                    return list(reversed(path))
                if w not in parent:
                    parent[w] = v
                    queue.append(w)
        return [start]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def walk(
        self,
        fn: Callable[[V], None],
        *,
        max_workers: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> WalkResult[V]:
        """
        Call fn(vertex) for every vertex, each only after all of its
        upstream vertices reached a terminal state, running ready vertices
        concurrently.

        A vertex whose upstream failed (or was itself skipped) is not called;
        it is recorded as skipped together with the failure that blocked it.
        Vertices unrelated to a failure keep running. Once `cancel_event` is
        set no further vertex is started; vertices already running finish.
        A KeyboardInterrupt sets `cancel_event` before waiting for them.
        """
        if max_workers is None:
            c = os.cpu_count() or 2
            max_workers = max(1, c - 1)

        result: WalkResult[V] = WalkResult()
        indeg = [len(p) for p in self._pred]
        blocked_by: Dict[int, int] = {}
        ready = deque(i for i, d in enumerate(indeg) if d == 0)
        in_flight: Dict[Future, int] = {}

        def settle(i: int) -> None:
            # i reached a terminal state; dependents inherit its failure, if any.
            cause = self._block_cause(i, result, blocked_by)
            for nxt in sorted(self._succ[i]):
                if cause is not None and nxt not in blocked_by:
                    blocked_by[nxt] = cause
                indeg[nxt] -= 1
                if indeg[nxt] == 0:
                    ready.append(nxt)

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            try:
                while ready or in_flight:
                    while ready:
                        i = ready.popleft()
                        vertex = self._vertices[i]
                        if i in blocked_by:
                            result.skipped[vertex] = self._vertices[blocked_by[i]]
                            log.debug("skip %s (blocked by %s)", vertex, self._vertices[blocked_by[i]])
                            settle(i)
                        elif cancel_event is not None and cancel_event.is_set():
                            result.skipped[vertex] = None
                            log.debug("skip %s (cancelled)", vertex)
                            settle(i)
                        else:
                            log.debug("start %s", vertex)
                            in_flight[pool.submit(fn, vertex)] = i

                    if not in_flight:
                        break

                    # wait for one completion, then loop to schedule newly-ready vertices
                    done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
                    for fut in done:
                        i = in_flight.pop(fut)
                        vertex = self._vertices[i]
                        exc = fut.exception()
                        if exc is None:
                            result.completed.append(vertex)
                            log.debug("done %s", vertex)
                        else:
                            result.failed[vertex] = exc
                            log.debug("failed %s: %s", vertex, exc)
                        settle(i)
            except KeyboardInterrupt:
                # running vertices must see the cancellation before the pool waits on them
                if cancel_event is not None:
                    cancel_event.set()
                raise

        return result

    def _block_cause(self, i: int, result: WalkResult[V], blocked_by: Dict[int, int]) -> Optional[int]:
        """Index of the failure that dependents of i inherit; None if i succeeded or was cancelled."""
        if self._vertices[i] in result.failed:
            return i
        return blocked_by.get(i)
