"""Computation graph: tensors, operators, ordering, rewriting and memory planning."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Optional, Union

from .allocator import Allocator
from .errors import check, vec_to_string
from .kinds import DataType, OpType
from .operator import Operator
from .tensor import GraphObject, Tensor

__all__ = ["Graph"]


def _swaps_last_two(permute: Sequence[int]) -> bool:
    rank = len(permute)
    return rank >= 2 and list(permute) == list(range(rank - 2)) + [rank - 1, rank - 2]


def _is_identity_composition(first: Sequence[int], second: Sequence[int]) -> bool:
    if len(first) != len(second):
        return False
    return [first[axis] for axis in second] == list(range(len(second)))


class Graph(GraphObject):
    """Holds tensors and operators bound to one runtime."""

    def __init__(self, runtime: Any) -> None:
        super().__init__()
        self.runtime = runtime
        self.tensors: list[Tensor] = []
        self.ops: list[Operator] = []
        self.allocator = Allocator(runtime)
        self._sorted = False

    # ----------------------------------------------------------- building
    def add_tensor(
        self,
        shape_or_tensor: Union[Sequence[int], Tensor],
        dtype: DataType = DataType.Float32,
    ) -> Tensor:
        """Add an existing tensor, or create one with the given shape and type."""
        if isinstance(shape_or_tensor, Tensor):
            tensor = shape_or_tensor
            check(
                tensor.runtime is self.runtime,
                f"Tensor runtime mismatch: cannot add a tensor in {tensor.runtime} "
                f"to {self.runtime}",
            )
        else:
            tensor = Tensor(shape_or_tensor, dtype, self.runtime)
        self.tensors.append(tensor)
        return tensor

    def add_tensors(self, tensors: Iterable[Tensor]) -> list[Tensor]:
        return [self.add_tensor(tensor) for tensor in tensors]

    def remove_operator(self, op: Operator) -> None:
        for index, existing in enumerate(self.ops):
            if existing is op:
                del self.ops[index]
                return

    def remove_tensor(self, tensor: Tensor) -> None:
        for index, existing in enumerate(self.tensors):
            if existing is tensor:
                del self.tensors[index]
                return

    def get_tensor(self, fuid: int) -> Optional[Tensor]:
        return next((t for t in self.tensors if t.fuid == fuid), None)

    def add_op(self, op_class: type, *args: Any, **kwargs: Any) -> Operator:
        """Create an operator whose outputs are created in this graph."""
        op = op_class(self, *args, **kwargs)
        self._add_operator_and_connect(op)
        return op

    def add_op_with_outputs(self, op_class: type, *args: Any, **kwargs: Any) -> Operator:
        """Create an operator whose output tensors are given."""
        op = op_class(None, *args, **kwargs)
        self._add_operator_and_connect(op)
        return op

    def _add_operator_and_connect(self, op: Operator) -> None:
        self._sorted = False
        self.ops.append(op)
        for tensor in op.inputs:
            if tensor is None:
                continue
            tensor._add_target(op)
            producer = tensor.source
            if producer is not None:
                producer._add_successor(op)
                op._add_predecessor(producer)
        for tensor in op.outputs:
            if tensor is None:
                continue
            tensor._set_source(op)
            for consumer in tensor.targets:
                consumer._add_predecessor(op)
                op._add_successor(consumer)

    @property
    def inputs(self) -> list[Tensor]:
        """Tensors that no operator produces."""
        return [t for t in self.tensors if t.source is None]

    @property
    def outputs(self) -> list[Tensor]:
        """Tensors that no operator reads."""
        return [t for t in self.tensors if not t.targets]

    # ------------------------------------------------------------ ordering
    def topo_sort(self) -> bool:
        """Order operators topologically; return False if the graph has a cycle."""
        if self._sorted:
            return True
        ordered: list[Operator] = []
        placed: set[int] = set()
        while len(ordered) < len(self.ops):
            modified = False
            for op in self.ops:
                if id(op) in placed:
                    continue
                if all(
                    t.source is None or id(t.source) in placed for t in op.inputs
                ):
                    modified = True
                    ordered.append(op)
                    placed.add(id(op))
            if not modified:
                return False
        self.ops = ordered
        self._sorted = True
        return True

    # ----------------------------------------------------------- rewriting
    def _rewire(self, consumer: Operator, old: Tensor, new: Tensor) -> None:
        count = sum(1 for t in consumer.inputs if t is old)
        consumer.replace_input(old, new)
        old._remove_target(consumer)
        old_producer = old.source
        if old_producer is not None:
            old_producer._remove_successor(consumer)
            consumer._remove_predecessor(old_producer)
        new_producer = new.source
        for _ in range(count):
            new._add_target(consumer)
            if new_producer is not None:
                new_producer._add_successor(consumer)
                consumer._add_predecessor(new_producer)

    def _drop_operator(self, op: Operator) -> None:
        for tensor in op.inputs:
            tensor._remove_target(op)
        for producer in op.predecessors:
            producer._remove_successor(op)
        for consumer in op.successors:
            consumer._remove_predecessor(op)
        for tensor in op.outputs:
            tensor._set_source(None)
            self.remove_tensor(tensor)
        self.remove_operator(op)
        self._sorted = False

    def _drop_inverse_transposes(self) -> bool:
        for second in list(self.ops):
            if second.op_type != OpType.Transpose:
                continue
            first = second.inputs[0].source
            if first is None or first.op_type != OpType.Transpose:
                continue
            result = second.outputs[0]
            consumers = result.targets
            if not consumers:
                continue
            if not _is_identity_composition(first.permute, second.permute):
                continue
            origin = first.inputs[0]
            for consumer in dict.fromkeys(consumers):
                self._rewire(consumer, result, origin)
            self._drop_operator(second)
            if not first.outputs[0].targets:
                self._drop_operator(first)
            return True
        return False

    def _fuse_transpose_into_matmul(self) -> bool:
        for op in list(self.ops):
            if op.op_type != OpType.MatMul:
                continue
            for position in (0, 1):
                tensor = op.inputs[position]
                producer = tensor.source
                if producer is None or producer.op_type != OpType.Transpose:
                    continue
                if not _swaps_last_two(producer.permute):
                    continue
                positions = [i for i in (0, 1) if op.inputs[i] is tensor]
                self._rewire(op, tensor, producer.inputs[0])
                for index in positions:
                    if index == 0:
                        op.trans_a = not op.trans_a
                    else:
                        op.trans_b = not op.trans_b
                check(op.check_valid(None), "Fused matmul is invalid")
                if not tensor.targets:
                    self._drop_operator(producer)
                self._sorted = False
                return True
        return False

    def optimize(self) -> None:
        """Drop pairs of mutually inverse transposes and fold last-two-axis
        transposes into the transpose flags of matrix multiplications."""
        while self._drop_inverse_transposes() or self._fuse_transpose_into_matmul():
            pass

    # -------------------------------------------------------- shapes, data
    def shape_infer(self) -> None:
        """Recompute output shapes of every operator in order."""
        for op in self.ops:
            shapes = op.infer_shape(op.inputs)
            check(shapes is not None, f"Shape inference failed for {op}")
            check(len(shapes) == len(op.outputs), "Output count mismatch")
            for shape, output in zip(shapes, op.outputs):
                if list(shape) != output.shape:
                    tensor = self.get_tensor(output.fuid)
                    check(tensor is not None, f"Tensor {output.fuid} not in graph")
                    tensor.shape = shape

    def data_malloc(self) -> None:
        """Plan tensor offsets by lifetime, allocate once and bind every tensor."""
        check(self.topo_sort(), "Graph contains a cycle")
        offsets: dict[int, int] = {}
        remaining = {id(t): len(t.targets) for t in self.tensors}

        def place(tensor: Tensor) -> None:
            if id(tensor) not in offsets:
                offsets[id(tensor)] = self.allocator.alloc(tensor.bytes)

        for tensor in self.inputs:
            place(tensor)
        for op in self.ops:
            for tensor in op.outputs:
                place(tensor)
            for tensor in op.inputs:
                if id(tensor) not in remaining:
                    continue
                remaining[id(tensor)] -= 1
                if (
                    remaining[id(tensor)] == 0
                    and tensor.source is not None
                    and tensor.bytes > 0
                ):
                    self.allocator.free(offsets[id(tensor)], tensor.bytes)
        for tensor in self.tensors:
            place(tensor)

        buffer = self.allocator.get_ptr()
        for tensor in self.tensors:
            tensor.bind(buffer, offsets[id(tensor)])
        self.allocator.info()

    # ---------------------------------------------------------- validation
    def check_valid(self) -> bool:
        """Verify the graph's structural invariants, raising on violation."""
        op_ids = {id(op) for op in self.ops}
        tensor_ids = {id(t) for t in self.tensors}
        for tensor in self.tensors:
            check(
                tensor.targets or tensor.source is not None,
                f"Tensor {tensor.guid} is not connected",
            )
            for op in tensor.targets:
                check(id(op) in op_ids, "Tensor target is not in the graph")
            source = tensor.source
            check(
                source is None or id(source) in op_ids,
                "Tensor source is not in the graph",
            )
        for op in self.ops:
            for tensor in [*op.inputs, *op.outputs]:
                check(id(tensor) in tensor_ids, "Operator tensor is not in the graph")
            for other in [*op.predecessors, *op.successors]:
                check(id(other) in op_ids, "Operator neighbour is not in the graph")
        seen: set[int] = set()
        for tensor in self.tensors:
            check(tensor.fuid not in seen, str(tensor.fuid))
            seen.add(tensor.fuid)
        return True

    def __str__(self) -> str:
        parts = ["Graph Tensors:\n"]
        parts.extend(f"{tensor}\n" for tensor in self.tensors)
        parts.append("Graph operators:\n")
        for op in self.ops:
            preds = vec_to_string(o.guid for o in op.predecessors)
            succs = vec_to_string(o.guid for o in op.successors)
            parts.append(f"OP {op.guid}, pred {preds}, succ {succs}, {op}\n")
        return "".join(parts)