"""Base class of graph operators."""

from __future__ import annotations

import copy
import weakref
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

from .errors import check
from .kinds import DataType, OpType
from .tensor import GraphObject, Tensor

if TYPE_CHECKING:
    from .graph import Graph

__all__ = ["Operator"]


class Operator(GraphObject):
    """An operator node that reads input tensors and produces output tensors.

    Subclasses implement :meth:`infer_shape` and :meth:`__str__`.
    """

    def __init__(
        self,
        op_type: OpType,
        inputs: Sequence[Optional[Tensor]],
        outputs: Sequence[Optional[Tensor]],
    ) -> None:
        super().__init__()
        self.op_type = OpType(op_type)
        self.inputs: list[Optional[Tensor]] = list(inputs)
        self.outputs: list[Optional[Tensor]] = list(outputs)
        self._predecessors: list[weakref.ref] = []
        self._successors: list[weakref.ref] = []

    # ----------------------------------------------------------- inference
    def infer_shape(self, inputs: Sequence[Tensor]) -> Optional[list[list[int]]]:
        """Return the output shapes for ``inputs``, or ``None`` if they are invalid."""
        raise NotImplementedError(f"{type(self).__name__} does not infer shapes")

    def infer_data_type(self, inputs: Sequence[Tensor]) -> list[DataType]:
        """Return the output data types; by default that of the first input."""
        return [inputs[0].dtype] * self.num_outputs()

    def check_valid(self, graph: Optional["Graph"]) -> bool:
        """Create the outputs in ``graph`` if given, else verify their shapes."""
        shapes = self.infer_shape(self.inputs)
        if shapes is None:
            return False
        if len(shapes) != len(self.outputs):
            return False
        if graph is not None:
            dtypes = self.infer_data_type(self.inputs)
            for index, (shape, dtype) in enumerate(zip(shapes, dtypes)):
                check(
                    self.outputs[index] is None,
                    "Find empty output while operator creation",
                )
                self.outputs[index] = graph.add_tensor(shape, dtype)
            return True
        return all(
            list(shape) == output.shape
            for shape, output in zip(shapes, self.outputs)
        )

    # ------------------------------------------------------------- access
    def get_output(self, index: Optional[int] = None) -> Tensor:
        """Return the single output, or the output at ``index``."""
        if index is None:
            check(len(self.outputs) == 1, "Unimplemented")
            return self.outputs[0]
        check(0 <= index < len(self.outputs), "Index exceeded")
        return self.outputs[index]

    def num_inputs(self) -> int:
        return len(self.inputs)

    def num_outputs(self) -> int:
        return len(self.outputs)

    @property
    def dtype(self) -> DataType:
        """Data type of the first input."""
        return self.inputs[0].dtype

    @property
    def out_dtype(self) -> DataType:
        """Data type of the single output."""
        return self.get_output().dtype

    @property
    def predecessors(self) -> list["Operator"]:
        return [op for op in (ref() for ref in self._predecessors) if op is not None]

    @property
    def successors(self) -> list["Operator"]:
        return [op for op in (ref() for ref in self._successors) if op is not None]

    # -------------------------------------------------------- connections
    def _add_predecessor(self, op: "Operator") -> None:
        self._predecessors.append(weakref.ref(op))

    def _add_successor(self, op: "Operator") -> None:
        self._successors.append(weakref.ref(op))

    def _remove_predecessor(self, op: "Operator") -> None:
        self._predecessors = [ref for ref in self._predecessors if ref() is not op]

    def _remove_successor(self, op: "Operator") -> None:
        self._successors = [ref for ref in self._successors if ref() is not op]

    def replace_input(self, old: Tensor, new: Tensor) -> None:
        """Substitute every occurrence of ``old`` among the inputs with ``new``."""
        self.inputs = [new if tensor is old else tensor for tensor in self.inputs]

    def clone(
        self, new_inputs: Sequence[Tensor], new_outputs: Sequence[Tensor]
    ) -> "Operator":
        """Copy this operator onto other tensors; the copy has a fresh id."""
        op = copy.copy(self)
        GraphObject.__init__(op)
        op.inputs = list(new_inputs)
        op.outputs = list(new_outputs)
        op._predecessors = []
        op._successors = []
        check(op.check_valid(None), "Cloned operator is invalid")
        return op

    def __str__(self) -> str:
        return f"{self.op_type}[{self.guid}]"