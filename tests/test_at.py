import numpy as np
import pytest

import stridegrad as sg
from stridegrad import at
from stridegrad.array_index import ArrayIndex, NewAxis, SingleElement


def test_single_element_selects_row(a34):
    out = at(a34, [SingleElement(1)])
    assert out.shape == (4,)
    np.testing.assert_array_equal(out.to_numpy(), [4, 5, 6, 7])


def test_slice_and_new_axis(a34):
    out = at(a34, [ArrayIndex.slice(0, 2), NewAxis()])
    assert out.shape == (2, 1, 4)
    assert out.strides == (16, 0, 4)
    np.testing.assert_array_equal(out.to_numpy(), np.arange(8).reshape(2, 1, 4))


def test_view_shares_buffer(a34):
    out = a34[1:, ::2]
    assert out.data is a34.data
    assert out.dtype == a34.dtype
    assert out.device is a34.device
    assert np.shares_memory(a34.device.native(a34), a34.device.native(out))


def test_input_is_not_modified(a34):
    before = (a34.shape, a34.strides, a34.offset)
    a34[2, 1:3]
    assert (a34.shape, a34.strides, a34.offset) == before


KEYS = [
    (),
    0,
    -1,
    (1, 2),
    (slice(None), 1),
    (slice(None, None, -1),),
    (slice(1, None), slice(None, None, -2), 0),
    (None, 1),
    (0, None, slice(1, 3)),
    (slice(-2, None), None, slice(None), None),
    (None, None, None),
    (slice(5, None),),
    (slice(None), slice(3, 1)),
    (-2, slice(None, None, -1), -1),
]


@pytest.mark.parametrize("key", KEYS)
def test_view_matches_numpy(device, key):
    expected = np.arange(24, dtype=np.float64).reshape(2, 3, 4)
    a = sg.array(expected, device=device)
    out = a[key]
    assert out.shape == expected[key].shape
    np.testing.assert_array_equal(out.to_numpy(), expected[key])
    assert out.data is a.data


def test_view_of_view_composes_offsets(a34):
    expected = np.arange(12, dtype=np.float32).reshape(3, 4)[1:][::-1][0, ::-1]
    out = a34[1:][::-1][0, ::-1]
    np.testing.assert_array_equal(out.to_numpy(), expected)


def test_trailing_axes_pass_through(device):
    a = sg.zeros((2, 3, 4, 5), device=device)
    out = a[1]
    assert out.shape == (3, 4, 5)
    assert out.strides == a.strides[1:]


@pytest.mark.parametrize("index", [3, -4])
def test_bounds_error(a34, index):
    with pytest.raises(sg.BoundsError) as excinfo:
        at(a34, [SingleElement(index)])
    assert str(excinfo.value) == f"Index {index} is out of bounds for axis 0 with size 3"


def test_bounds_error_reports_axis(a34):
    with pytest.raises(sg.BoundsError, match="axis 1 with size 4"):
        a34[0, 4]


def test_bounds_error_is_index_error(a34):
    with pytest.raises(IndexError):
        a34[10]


def test_negative_index_wraps(a34):
    np.testing.assert_array_equal(a34[-1].to_numpy(), a34[2].to_numpy())
    assert a34[-1].offset == a34[2].offset


def test_single_element_on_empty_axis(device):
    a = sg.zeros((0, 3), device=device)
    with pytest.raises(sg.BoundsError):
        a[0]


def test_empty_slices(device):
    a = sg.zeros((0, 3), device=device)
    assert a[::-1].shape == (0, 3)
    assert a[::-1].to_numpy().shape == (0, 3)


def test_too_many_indices(a34):
    with pytest.raises(sg.DimensionError, match="Too many indices"):
        a34[0, 0, 0]


def test_new_axis_does_not_count_as_consumed(a34):
    out = a34[None, 0, None, 0, None]
    assert out.shape == (1, 1, 1)
    assert out.to_numpy().item() == 0


def test_scalar_view(a34):
    out = a34[2, 3]
    assert out.shape == ()
    assert out.ndim == 0
    assert out.to_numpy().item() == 11


def test_iteration_stops_at_bounds(a34):
    rows = [row.tolist() for row in a34]
    assert rows == [[0, 1, 2, 3], [4, 5, 6, 7], [8, 9, 10, 11]]


# --- gradients ----------------------------------------------------------------


def test_backward_scatters_into_zeros(a34):
    a34.require_grad()
    y = a34[1]
    y.backward()
    expected = np.zeros((3, 4), dtype=np.float32)
    expected[1] = 1
    np.testing.assert_array_equal(a34.grad.to_numpy(), expected)
    assert a34.grad.dtype == a34.dtype


def test_backward_with_strided_slice(a34):
    a34.require_grad()
    y = a34[::2, 1:3]
    g = sg.array(np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32))
    y.backward(g)
    expected = np.zeros((3, 4), dtype=np.float32)
    expected[::2, 1:3] = [[1, 2], [3, 4]]
    np.testing.assert_array_equal(a34.grad.to_numpy(), expected)


def test_backward_through_new_axis_and_negative_step(a34):
    a34.require_grad()
    y = a34[None, ::-1, 0]
    g = sg.array(np.array([[10.0, 20.0, 30.0]], dtype=np.float32))
    y.backward(g)
    expected = np.zeros((3, 4), dtype=np.float32)
    expected[::-1, 0] = [10, 20, 30]
    np.testing.assert_array_equal(a34.grad.to_numpy(), expected)


def test_overlapping_views_accumulate(a34):
    a34.require_grad()
    z = a34[0] + a34[0, :]
    z.backward()
    expected = np.zeros((3, 4), dtype=np.float32)
    expected[0] = 2
    np.testing.assert_array_equal(a34.grad.to_numpy(), expected)


def test_chained_views_backward(a34):
    a34.require_grad()
    y = a34[1:][::-1][0]
    y.backward()
    expected = np.zeros((3, 4), dtype=np.float32)
    expected[2] = 1
    np.testing.assert_array_equal(a34.grad.to_numpy(), expected)


def test_constant_input_records_nothing(a34):
    y = a34[1]
    assert y.is_constant
    assert len(sg.autograd.tape) == 0
