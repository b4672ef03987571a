import pytest

from tensorgraph.errors import TensorGraphError
from tensorgraph.graph import Graph
from tensorgraph.kinds import DataType, Device
from tensorgraph.operators import CastOp, CastType, ReluOp
from tensorgraph.runtime import NativeCpuRuntime


def test_instance_is_shared():
    first = NativeCpuRuntime.instance()
    second = NativeCpuRuntime.instance()
    assert second is first
    before = second.allocated
    buffer = first.alloc(16)
    assert second.allocated == before + 16
    first.dealloc(buffer)
    assert second.allocated == before


def test_name_and_device():
    runtime = NativeCpuRuntime.instance()
    assert str(runtime) == "CPU Runtime"
    assert runtime.device is Device.CPU
    assert runtime.is_cpu() is True


@pytest.mark.parametrize("size", [0, 1, 7, 8, 9, 48, 100])
def test_alloc_rounds_up_to_words(size):
    runtime = NativeCpuRuntime()
    buffer = runtime.alloc(size)
    assert len(buffer) % 8 == 0
    assert size <= len(buffer) < size + 8
    assert not any(buffer)


def test_alloc_and_dealloc_balance():
    runtime = NativeCpuRuntime()
    first = runtime.alloc(10)
    second = runtime.alloc(30)
    assert runtime.allocated == len(first) + len(second)
    runtime.dealloc(first)
    runtime.dealloc(second)
    assert runtime.allocated == 0


def test_dealloc_rejects_foreign_buffer():
    runtime = NativeCpuRuntime()
    with pytest.raises(TensorGraphError):
        runtime.dealloc(b"abc")


def test_alloc_rejects_negative_size():
    with pytest.raises(TensorGraphError):
        NativeCpuRuntime().alloc(-1)


def test_run_executes_kernels():
    runtime = NativeCpuRuntime.instance()
    g = Graph(runtime)
    source = g.add_tensor([4], DataType.Float32)
    op = g.add_op(ReluOp, source, None)
    g.data_malloc()

    def fill(data, size, dtype):
        data[:size] = [-1, 2, -3, 4]

    source.set_data(fill)
    runtime.run(g)
    assert op.get_output().equal_data([0, 2, 0, 4])


def test_run_without_kernel_raises():
    runtime = NativeCpuRuntime.instance()
    g = Graph(runtime)
    source = g.add_tensor([2], DataType.Float32)
    g.add_op(CastOp, source, None, CastType.Float2Int32)
    g.data_malloc()
    with pytest.raises(TensorGraphError, match="Kernel not found"):
        runtime.run(g)