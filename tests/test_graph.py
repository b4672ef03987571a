import numpy as np
import pytest

from tensorgraph.errors import TensorGraphError, check
from tensorgraph.graph import Graph
from tensorgraph.kinds import DataType, OpType
from tensorgraph.operator import Operator
from tensorgraph.operators import MatmulOp, TransposeOp
from tensorgraph.tensor import Tensor


class _Runtime:
    def alloc(self, size):
        return bytearray(size)

    def dealloc(self, buffer):
        pass

    def is_cpu(self):
        return True

    def __str__(self):
        return "Test Runtime"


class PassThrough(Operator):
    def __init__(self, graph, input, output):
        super().__init__(OpType.Relu, [input], [output])
        check(self.check_valid(graph))

    def infer_shape(self, inputs):
        return [inputs[0].shape]

    def __str__(self):
        return f"PassThrough[{self.guid}]"


@pytest.fixture
def graph():
    return Graph(_Runtime())


def test_optimize(graph):
    g = graph
    i1 = g.add_tensor([2, 3, 4, 5], DataType.UInt32)
    i2 = g.add_tensor([2, 3, 4, 5], DataType.UInt32)
    t1 = g.add_tensor([2, 3, 5, 4], DataType.UInt32)
    t2 = g.add_tensor([2, 3, 4, 5], DataType.UInt32)
    t3 = g.add_tensor([2, 3, 5, 4], DataType.UInt32)
    o = g.add_tensor([2, 3, 4, 4], DataType.UInt32)
    g.add_op_with_outputs(TransposeOp, i1, t1, [0, 1, 3, 2])
    g.add_op_with_outputs(TransposeOp, t1, t2, [0, 1, 3, 2])
    g.add_op_with_outputs(TransposeOp, i2, t3, [0, 1, 3, 2])
    g.add_op_with_outputs(MatmulOp, t2, t3, o, False, False)
    g.optimize()
    assert len(g.ops) == 1
    assert len(g.tensors) == 3
    op = g.ops[0]
    assert op.op_type == 7
    assert op.inputs[0] is i1
    assert op.inputs[1] is i2
    assert op.outputs[0] is o
    assert op.trans_a is False
    assert op.trans_b is True
    assert g.check_valid() is True


def test_optimize_keeps_non_inverse_transpose(graph):
    g = graph
    i1 = g.add_tensor([2, 3, 4, 5])
    t1 = g.add_tensor([2, 4, 3, 5])
    t2 = g.add_tensor([2, 4, 5, 3])
    b = g.add_tensor([2, 4, 3, 6])
    o = g.add_tensor([2, 4, 5, 6])
    first = g.add_op_with_outputs(TransposeOp, i1, t1, [0, 2, 1, 3])
    g.add_op_with_outputs(TransposeOp, t1, t2, [0, 1, 3, 2])
    matmul = g.add_op_with_outputs(MatmulOp, t2, b, o, False, False)
    g.optimize()
    assert g.ops == [first, matmul]
    assert matmul.inputs[0] is t1
    assert matmul.trans_a is True
    assert matmul.trans_b is False
    assert all(t is not t2 for t in g.tensors)


def test_optimize_leaves_graph_output_transposes(graph):
    x = graph.add_tensor([2, 3])
    y = graph.add_tensor([3, 2])
    z = graph.add_tensor([2, 3])
    graph.add_op_with_outputs(TransposeOp, x, y, [1, 0])
    graph.add_op_with_outputs(TransposeOp, y, z, [1, 0])
    graph.optimize()
    assert len(graph.ops) == 2
    assert len(graph.tensors) == 3


def test_add_op_creates_and_connects_output(graph):
    x = graph.add_tensor([2, 2])
    first = graph.add_op(PassThrough, x, None)
    second = graph.add_op(PassThrough, first.get_output(), None)
    assert first.get_output() in graph.tensors
    assert first.successors == [second]
    assert second.predecessors == [first]
    assert first.get_output().targets == [second]
    assert graph.inputs == [x]
    assert graph.outputs == [second.get_output()]


def test_topo_sort_reorders_operators(graph):
    x, y, z = (graph.add_tensor([3]) for _ in range(3))
    late = graph.add_op_with_outputs(PassThrough, y, z)
    early = graph.add_op_with_outputs(PassThrough, x, y)
    assert graph.topo_sort() is True
    assert graph.ops == [early, late]


def test_topo_sort_detects_cycle(graph):
    a = graph.add_tensor([1])
    b = graph.add_tensor([1])
    graph.add_op_with_outputs(PassThrough, a, b)
    graph.add_op_with_outputs(PassThrough, b, a)
    assert graph.topo_sort() is False
    with pytest.raises(TensorGraphError):
        graph.data_malloc()


def test_shape_infer_updates_outputs(graph):
    x = graph.add_tensor([2, 3])
    op = graph.add_op(PassThrough, x, None)
    x.shape = [4, 5]
    graph.shape_infer()
    assert op.get_output().shape == [4, 5]
    assert op.get_output().size == 20


def test_data_malloc_binds_and_reuses_memory(graph):
    x = graph.add_tensor([2, 2])
    y = graph.add_op(PassThrough, x, None).get_output()
    z = graph.add_op(PassThrough, y, None).get_output()
    w = graph.add_op(PassThrough, z, None).get_output()
    graph.data_malloc()
    assert all(t.has_data for t in (x, y, z, w))
    assert graph.allocator.peak < 4 * x.bytes
    z.data[:] = 7
    w.data[:] = 1
    x.data[:] = 2
    assert np.array_equal(z.data, np.full(4, 7, dtype=np.float32))


def test_add_tensor_rejects_other_runtime(graph):
    foreign = Tensor([1], DataType.Float32, _Runtime())
    with pytest.raises(TensorGraphError):
        graph.add_tensor(foreign)


def test_add_tensors_and_get_tensor(graph):
    runtime = graph.runtime
    tensors = [Tensor([1], DataType.Float32, runtime) for _ in range(2)]
    assert graph.add_tensors(tensors) == tensors
    assert graph.get_tensor(tensors[1].fuid) is tensors[1]
    assert graph.get_tensor(-1) is None


def test_remove_operator_and_tensor(graph):
    x = graph.add_tensor([1])
    op = graph.add_op(PassThrough, x, None)
    graph.remove_operator(op)
    graph.remove_tensor(x)
    assert graph.ops == []
    assert graph.tensors == [op.get_output()]


def test_check_valid_rejects_unconnected_tensor(graph):
    x = graph.add_tensor([1])
    graph.add_op(PassThrough, x, None)
    assert graph.check_valid() is True
    graph.add_tensor([5])
    with pytest.raises(TensorGraphError):
        graph.check_valid()


def test_str_lists_tensors_and_operators(graph):
    x = graph.add_tensor([1])
    op = graph.add_op(PassThrough, x, None)
    text = str(graph)
    assert text.startswith("Graph Tensors:\n")
    assert f"OP {op.guid}, pred [], succ [], PassThrough[{op.guid}]\n" in text
    assert "Graph operators:\n" in text