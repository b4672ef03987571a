# tensorgraph

A small computation-graph library for tensors. You describe a model as a
`Graph` of `Tensor`s and operators. The library infers output shapes and data
types, plans memory with a simulated allocator, and runs the graph on the CPU
through a registry of kernels.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Concepts

- `tensorgraph.runtime.NativeCpuRuntime`: the CPU runtime. Use
  `NativeCpuRuntime.instance()` to get the shared instance. Its `run(graph)`
  method looks up a kernel for every operator in `graph.ops` and runs it.
  `alloc(size)` returns a zeroed `bytearray` rounded up to a multiple of 8
  bytes. Importing this module registers the CPU kernels.
- `tensorgraph.graph.Graph`: holds tensors and operators. Its methods are
  `add_tensor`, `add_tensors`, `add_op`, `add_op_with_outputs`,
  `remove_operator`, `remove_tensor`, `get_tensor`, `topo_sort`, `optimize`,
  `shape_infer`, `data_malloc` and `check_valid`. `optimize` drops pairs of
  mutually inverse transposes and folds transposes of the last two axes into
  the `trans_a` / `trans_b` flags of a `MatmulOp`. `data_malloc` plans each
  tensor's offset by its lifetime, allocates once and binds every tensor.
- `tensorgraph.tensor.Tensor`: a shaped, typed tensor with `shape`, `size`,
  `bytes`, `rank`, `dtype` and a flat numpy view `data` once bound. Its
  methods are `bind`, `set_data`, `format_data`, `print_data` and
  `equal_data` (against another tensor or a list of values).
- `tensorgraph.operators`: the operators `AddOp`, `SubOp`, `MulOp`, `DivOp`,
  `MatmulOp`, `TransposeOp`, `ConcatOp`, `ReluOp`, `ClipOp` and `CastOp`
  (with the `CastType` enum).
- `tensorgraph.kinds`: the `DataType`, `OpType` and `Device` enums.
- `tensorgraph.allocator.Allocator`: simulates allocations and frees with
  best-fit reuse, merges adjacent free blocks and tracks `used` and `peak`.
  `get_ptr()` performs the single real allocation of the peak size; the
  allocator is also a context manager that gives the buffer back on exit.
- `tensorgraph.kernel`: the `Kernel` base class, the `KernelRegistry` and the
  `register_kernel` class decorator for adding kernels.
- `tensorgraph.generators`: fills tensor data. It provides
  `IncrementalGenerator`, `ValueGenerator`, `one_generator()` and
  `zero_generator()`, for `UInt32` and `Float32` tensors.
- `tensorgraph.operator_utils`: `infer_broadcast`, `get_real_axis`,
  `locate_index`, `delocate_index` and `get_kernel_attrs_str`.

## Example

```python
from tensorgraph.graph import Graph
from tensorgraph.kinds import DataType
from tensorgraph.operators import ConcatOp
from tensorgraph.runtime import NativeCpuRuntime
from tensorgraph.generators import IncrementalGenerator, one_generator

runtime = NativeCpuRuntime.instance()
g = Graph(runtime)
t1 = g.add_tensor([2, 2, 3, 1], DataType.Float32)
t2 = g.add_tensor([2, 2, 1, 1], DataType.Float32)
op = g.add_op(ConcatOp, [t1, t2], None, 2)

g.data_malloc()
t1.set_data(IncrementalGenerator())
t2.set_data(one_generator())
runtime.run(g)

op.get_output().print_data()
```

Broadcasting in element-wise operators follows the multidirectional rules
that numpy uses. `MatmulOp` accepts `trans_a` and `trans_b` flags and
broadcasts batch dimensions.

Errors are raised as `tensorgraph.errors.TensorGraphError`. Examples are a
kernel that is not registered, an axis out of range, or shapes that are not
compatible.

## Limitations

- CPU kernels exist for `Concat`, `Add`, `Sub`, `Mul`, `Div`, `Transpose`,
  `Relu` and `Clip` only, and only for `Float32` and `UInt32` data.
  `MatmulOp` and `CastOp` infer shapes and types but cannot be run; running a
  graph that contains them raises `TensorGraphError`.
- There is no command-line tool and no reading or writing of model files;
  graphs are built in Python code.