import numpy as np
import pytest

from tensorgraph.errors import TensorGraphError
from tensorgraph.generators import (
    DataGenerator,
    IncrementalGenerator,
    ValueGenerator,
    one_generator,
    zero_generator,
)
from tensorgraph.kinds import DataType


def test_incremental_float32():
    data = np.zeros(6, dtype=np.float32)
    IncrementalGenerator()(data, 6, DataType.Float32)
    assert data.tolist() == list(range(6))


def test_incremental_uint32():
    data = np.zeros(5, dtype=np.uint32)
    IncrementalGenerator()(data, 5, DataType.UInt32)
    assert data.tolist() == list(range(5))


def test_fills_only_requested_size():
    data = np.full(5, 9, dtype=np.float32)
    IncrementalGenerator()(data, 3, DataType.Float32)
    assert data[:3].tolist() == [0, 1, 2]
    assert data[3:].tolist() == [9, 9]


def test_value_generator_uses_value():
    data = np.zeros(4, dtype=np.uint32)
    ValueGenerator(7)(data, 4, DataType.UInt32)
    assert data.tolist() == [7] * 4


def test_one_and_zero_generators():
    data = np.full(3, 5, dtype=np.float32)
    one_generator()(data, 3, DataType.Float32)
    assert data.tolist() == [1, 1, 1]
    zero_generator()(data, 3, DataType.Float32)
    assert data.tolist() == [0, 0, 0]


@pytest.mark.parametrize("dtype", [DataType.Int32, DataType.Double, DataType.Int64])
def test_unsupported_dtype_raises(dtype):
    data = np.zeros(2, dtype=np.float64)
    with pytest.raises(TensorGraphError):
        IncrementalGenerator()(data, 2, dtype)


def test_base_generator_raises():
    data = np.zeros(2, dtype=np.float32)
    with pytest.raises(TensorGraphError):
        DataGenerator()(data, 2, DataType.Float32)