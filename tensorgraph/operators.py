"""Concrete operators: concat, element-wise binaries, matmul, transpose and unary ops."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from typing import TYPE_CHECKING, Optional

from .errors import check, vec_to_string
from .kinds import DataType, OpType
from .operator import Operator
from .operator_utils import get_real_axis, infer_broadcast
from .tensor import Tensor

if TYPE_CHECKING:
    from .graph import Graph

__all__ = [
    "ConcatOp",
    "ElementWiseOp",
    "AddOp",
    "SubOp",
    "MulOp",
    "DivOp",
    "MatmulOp",
    "TransposeOp",
    "UnaryOp",
    "ReluOp",
    "ClipOp",
    "CastType",
    "CastOp",
]

Shapes = Optional[list[list[int]]]


class ConcatOp(Operator):
    """Concatenate tensors that agree in every dimension except ``dim``."""

    def __init__(
        self,
        graph: Optional["Graph"],
        inputs: Sequence[Tensor],
        output: Optional[Tensor],
        dim: int,
    ) -> None:
        super().__init__(OpType.Concat, inputs, [output])
        check(len(self.inputs) > 0, "Concat needs at least one input")
        self.dim = get_real_axis(dim, self.inputs[0].rank)
        check(self.check_valid(graph), f"Invalid operator {type(self).__name__}")

    def infer_shape(self, inputs: Sequence[Tensor]) -> Shapes:
        dims = inputs[0].shape
        rank = len(dims)
        for tensor in inputs[1:]:
            other = tensor.shape
            if len(other) != rank:
                return None
            if any(a != b for axis, (a, b) in enumerate(zip(dims, other)) if axis != self.dim):
                return None
            dims[self.dim] += other[self.dim]
        return [dims]

    def num_outputs(self) -> int:
        return 1

    def __str__(self) -> str:
        shapes = "".join(vec_to_string(t.shape) + "," for t in self.inputs)
        guids = "".join(f"{t.guid}," for t in self.inputs)
        return (
            f"Concat[{self.guid}]({shapes}dim={self.dim},input={guids}"
            f"output={self.outputs[0].guid})"
        )


class ElementWiseOp(Operator):
    """Binary element-wise operator with multidirectional broadcasting."""

    def __init__(
        self,
        op_type: OpType,
        graph: Optional["Graph"],
        input0: Tensor,
        input1: Tensor,
        output: Optional[Tensor] = None,
    ) -> None:
        super().__init__(op_type, [input0, input1], [output])
        check(self.check_valid(graph), f"Invalid operator {type(self).__name__}")

    def infer_shape(self, inputs: Sequence[Tensor]) -> Shapes:
        return [infer_broadcast(inputs[0].shape, inputs[1].shape)]

    def num_inputs(self) -> int:
        return 2

    def num_outputs(self) -> int:
        return 1

    def __str__(self) -> str:
        a, b = self.inputs
        return (
            f"{self.op_type}[{self.guid}]({vec_to_string(a.shape)},"
            f"{vec_to_string(b.shape)},input0={a.guid},input1={b.guid},"
            f"output={self.outputs[0].guid})"
        )


class AddOp(ElementWiseOp):
    def __init__(self, graph, input0, input1, output=None) -> None:
        super().__init__(OpType.Add, graph, input0, input1, output)


class SubOp(ElementWiseOp):
    def __init__(self, graph, input0, input1, output=None) -> None:
        super().__init__(OpType.Sub, graph, input0, input1, output)


class MulOp(ElementWiseOp):
    def __init__(self, graph, input0, input1, output=None) -> None:
        super().__init__(OpType.Mul, graph, input0, input1, output)


class DivOp(ElementWiseOp):
    def __init__(self, graph, input0, input1, output=None) -> None:
        super().__init__(OpType.Div, graph, input0, input1, output)


class MatmulOp(Operator):
    """Batched matrix multiplication; the flags transpose the last two axes."""

    def __init__(
        self,
        graph: Optional["Graph"],
        a: Tensor,
        b: Tensor,
        c: Optional[Tensor] = None,
        trans_a: bool = False,
        trans_b: bool = False,
    ) -> None:
        super().__init__(OpType.MatMul, [a, b], [c])
        self.trans_a = trans_a
        self.trans_b = trans_b
        self.m = self.n = self.k = 0
        check(self.check_valid(graph), f"Invalid operator {type(self).__name__}")

    def infer_shape(self, inputs: Sequence[Tensor]) -> Shapes:
        shape_a, shape_b = inputs[0].shape, inputs[1].shape
        if len(shape_a) < 2 or len(shape_b) < 2:
            return None
        m, k = shape_a[-2:]
        if self.trans_a:
            m, k = k, m
        k_b, n = shape_b[-2:]
        if self.trans_b:
            k_b, n = n, k_b
        if k != k_b:
            return None
        batch = infer_broadcast(shape_a[:-2], shape_b[:-2])
        self.m, self.n, self.k = m, n, k
        return [batch + [m, n]]

    def num_outputs(self) -> int:
        return 1

    def __str__(self) -> str:
        a = "A^T" if self.trans_a else "A"
        b = "B^T" if self.trans_b else "B"
        return (
            f"Matmul([{a},{b}],A={self.inputs[0].guid},B={self.inputs[1].guid},"
            f"C={self.outputs[0].guid},mnk=[{self.m},{self.n},{self.k}])"
        )


class TransposeOp(Operator):
    """Permute the axes of a tensor, as numpy.transpose does."""

    def __init__(
        self,
        graph: Optional["Graph"],
        input: Tensor,
        output: Optional[Tensor],
        permute: Sequence[int] = (),
    ) -> None:
        super().__init__(OpType.Transpose, [input], [output])
        rank = input.rank
        if not permute:
            self.permute = list(range(rank))
        else:
            check(len(permute) == rank, "Permutation length differs from rank")
            self.permute = list(permute)
        check(self.check_valid(graph), f"Invalid operator {type(self).__name__}")

    def infer_shape(self, inputs: Sequence[Tensor]) -> Shapes:
        dims = inputs[0].shape
        if sorted(self.permute) != list(range(len(dims))):
            return None
        return [[dims[axis] for axis in self.permute]]

    def num_inputs(self) -> int:
        return 1

    def num_outputs(self) -> int:
        return 1

    def __str__(self) -> str:
        source = self.inputs[0]
        return (
            f"{self.op_type}[{self.guid}]({vec_to_string(source.shape)},"
            f"input={source.guid},output={self.outputs[0].guid})"
        )


class UnaryOp(Operator):
    """Base of single-input operators that keep the input shape."""

    def __init__(
        self,
        op_type: OpType,
        graph: Optional["Graph"],
        input: Tensor,
        output: Optional[Tensor] = None,
    ) -> None:
        super().__init__(op_type, [input], [output])
        check(self.check_valid(graph), f"Invalid operator {type(self).__name__}")

    def infer_shape(self, inputs: Sequence[Tensor]) -> Shapes:
        return [inputs[0].shape]

    def num_inputs(self) -> int:
        return 1

    def num_outputs(self) -> int:
        return 1

    def __str__(self) -> str:
        source = self.inputs[0]
        return (
            f"{self.op_type}[{self.guid}]({vec_to_string(source.shape)},"
            f"input={source.guid},output={self.outputs[0].guid})"
        )


class ReluOp(UnaryOp):
    def __init__(self, graph, input, output=None) -> None:
        super().__init__(OpType.Relu, graph, input, output)


class ClipOp(Operator):
    """Limit values to ``[min_value, max_value]``; either bound may be absent."""

    def __init__(
        self,
        graph: Optional["Graph"],
        input: Tensor,
        output: Optional[Tensor],
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
    ) -> None:
        super().__init__(OpType.Clip, [input], [output])
        self.min_value = min_value
        self.max_value = max_value
        check(self.check_valid(graph), f"Invalid operator {type(self).__name__}")

    def infer_shape(self, inputs: Sequence[Tensor]) -> Shapes:
        return [inputs[0].shape]

    def num_inputs(self) -> int:
        return 1

    def num_outputs(self) -> int:
        return 1

    def __str__(self) -> str:
        source = self.inputs[0]
        return (
            f"{self.op_type}[{self.guid}]({vec_to_string(source.shape)},"
            f"input={source.guid},output={self.outputs[0].guid})"
        )


class CastType(enum.Enum):
    Float2Float16 = 0
    Float2Int64 = 1
    Float2Int32 = 2
    Float2Int16 = 3
    Float2Int8 = 4
    Float2BFloat16 = 5
    Int322Float = 6
    Int322Int8 = 7
    Int322Int16 = 8
    Int322Int64 = 9
    Int162Float = 10
    Int162Int32 = 11
    Int82Float = 12
    Int82Int16 = 13
    Int82Int32 = 14
    Uint82Float = 15
    Uint82Int32 = 16
    Uint82Int64 = 17
    Int642Int32 = 18
    Int642Uint32 = 19
    Int642Float = 20
    Uint322Int64 = 21
    Float162Float = 22
    BFloat162Float = 23
    Float2Float = 24


_CAST_OUTPUT = {
    CastType.Float2Float16: DataType.Float16,
    CastType.Float2Int64: DataType.Int64,
    CastType.Float2Int32: DataType.Int32,
    CastType.Float2Int16: DataType.Int16,
    CastType.Float2Int8: DataType.Int8,
    CastType.Float2BFloat16: DataType.BFloat16,
    CastType.Int322Float: DataType.Float32,
    CastType.Int322Int8: DataType.Int8,
    CastType.Int322Int16: DataType.Int16,
    CastType.Int322Int64: DataType.Int64,
    CastType.Int162Float: DataType.Float32,
    CastType.Int162Int32: DataType.Int32,
    CastType.Int82Float: DataType.Float32,
    CastType.Int82Int16: DataType.Int16,
    CastType.Int82Int32: DataType.Int32,
    CastType.Uint82Float: DataType.Float32,
    CastType.Uint82Int32: DataType.Int32,
    CastType.Uint82Int64: DataType.Int64,
    CastType.Int642Int32: DataType.Int32,
    CastType.Int642Uint32: DataType.UInt32,
    CastType.Int642Float: DataType.Float32,
    CastType.Uint322Int64: DataType.Int64,
    CastType.Float162Float: DataType.Float32,
    CastType.BFloat162Float: DataType.Float32,
    CastType.Float2Float: DataType.Float32,
}


class CastOp(Operator):
    """Convert elements to another data type, keeping the shape."""

    def __init__(
        self,
        graph: Optional["Graph"],
        input: Tensor,
        output: Optional[Tensor],
        cast_type: CastType,
    ) -> None:
        super().__init__(OpType.Cast, [input], [output])
        self.cast_type = CastType(cast_type)
        check(self.check_valid(graph), f"Invalid operator {type(self).__name__}")

    def infer_shape(self, inputs: Sequence[Tensor]) -> Shapes:
        return [inputs[0].shape]

    def infer_data_type(self, inputs: Sequence[Tensor]) -> list[DataType]:
        return [self.output_data_type()] * self.num_outputs()

    def output_data_type(self) -> DataType:
        """The data type this cast produces."""
        return _CAST_OUTPUT[self.cast_type]

    def num_inputs(self) -> int:
        return 1

    def num_outputs(self) -> int:
        return 1

    def __str__(self) -> str:
        return f"{self.op_type}[{self.guid}](output={self.outputs[0].guid})"