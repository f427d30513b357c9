import numpy as np
import pytest

import stridegrad as sg
from stridegrad import add_at, add_at_axis
from stridegrad.array_index import ArrayIndex, NewAxis, SingleElement


def _indices(values, device=None):
    return sg.array(np.asarray(values, dtype=np.int64), device=device)


# --- view form ------------------------------------------------------------------


def test_adds_into_selected_view(a34):
    b = sg.array(np.full((2, 2), 100, dtype=np.float32))
    out = add_at(a34, [ArrayIndex.slice(1, None), ArrayIndex.slice(None, None, 2)], b)
    expected = np.arange(12, dtype=np.float32).reshape(3, 4)
    expected[1:, ::2] += 100
    np.testing.assert_array_equal(out.to_numpy(), expected)


def test_inputs_are_not_modified(a34):
    b = sg.ones((4,))
    out = add_at(a34, [SingleElement(0)], b)
    np.testing.assert_array_equal(a34.to_numpy(), np.arange(12).reshape(3, 4))
    np.testing.assert_array_equal(b.to_numpy(), np.ones(4))
    assert out.data is not a34.data
    assert out.is_contiguous


def test_adds_into_view_of_view(a34):
    view = a34[::-1]
    out = add_at(view, [SingleElement(0)], sg.ones((4,)))
    expected = np.arange(12, dtype=np.float32).reshape(3, 4)[::-1].copy()
    expected[0] += 1
    np.testing.assert_array_equal(out.to_numpy(), expected)


def test_adds_through_new_axis(a34):
    b = sg.array(np.ones((2, 1, 4), dtype=np.float32))
    out = add_at(a34, [ArrayIndex.slice(0, 2), NewAxis()], b)
    expected = np.arange(12, dtype=np.float32).reshape(3, 4)
    expected[:2] += 1
    np.testing.assert_array_equal(out.to_numpy(), expected)


def test_shape_mismatch_is_rejected(a34):
    b = sg.ones((3,))
    with pytest.raises(sg.ShapeError) as excinfo:
        add_at(a34, [SingleElement(0)], b)
    assert excinfo.value.diag.expected == "(4,)"
    assert excinfo.value.diag.actual == "(3,)"
    np.testing.assert_array_equal(a34.to_numpy(), np.arange(12).reshape(3, 4))


def test_broadcastable_addend_is_still_rejected(a34):
    with pytest.raises(sg.ShapeError):
        add_at(a34, [ArrayIndex.slice(0, 2)], sg.ones((4,)))


def test_dtype_mismatch_is_rejected(a34):
    b = sg.ones((4,), dtype=sg.float64)
    with pytest.raises(sg.DtypeError, match="float32 != float64"):
        add_at(a34, [SingleElement(0)], b)


def test_view_form_backward(a34):
    a34.require_grad()
    b = sg.ones((2, 4)).require_grad()
    indices = [ArrayIndex.slice(None, None, 2)]
    out = add_at(a34, indices, b)
    g = sg.array(np.arange(12, dtype=np.float32).reshape(3, 4) * 10)
    out.backward(g)
    np.testing.assert_array_equal(a34.grad.to_numpy(), g.to_numpy())
    np.testing.assert_array_equal(b.grad.to_numpy(), g.to_numpy()[::2])


def test_view_form_only_addend_requires_grad(a34):
    b = sg.zeros((3,)).require_grad()
    out = add_at(a34, [ArrayIndex.slice(None), SingleElement(-1)], b)
    out.backward()
    np.testing.assert_array_equal(b.grad.to_numpy(), np.ones(3))
    assert a34.grad is None


# --- axis form ------------------------------------------------------------------


def test_axis_form_accumulates_duplicates(device):
    a = sg.zeros((3, 2), device=device)
    b = sg.array(np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]], dtype=np.float32), device=device)
    out = add_at_axis(a, _indices([0, 0, 2], device), 0, b)
    np.testing.assert_array_equal(out.to_numpy(), [[4, 6], [0, 0], [5, 6]])
    np.testing.assert_array_equal(a.to_numpy(), np.zeros((3, 2)))


def test_axis_form_keeps_base_values(a34):
    b = sg.ones((3, 2))
    out = add_at_axis(a34, _indices([3, 3]), 1, b)
    expected = np.arange(12, dtype=np.float32).reshape(3, 4)
    expected[:, 3] += 2
    np.testing.assert_array_equal(out.to_numpy(), expected)


def test_axis_form_scalar_index(a34):
    out = add_at_axis(a34, _indices(1), 0, sg.ones((4,)))
    expected = np.arange(12, dtype=np.float32).reshape(3, 4)
    expected[1] += 1
    np.testing.assert_array_equal(out.to_numpy(), expected)


def test_axis_form_rank_check(a34):
    with pytest.raises(sg.DimensionError, match="Addend must have 2 dimensions"):
        add_at_axis(a34, _indices([0]), 0, sg.ones((4,)))


@pytest.mark.parametrize("axis", [-1, 2])
def test_axis_form_axis_check(a34, axis):
    with pytest.raises(sg.DimensionError):
        add_at_axis(a34, _indices([0]), axis, sg.ones((1, 4)))


def test_axis_form_shape_check(a34):
    with pytest.raises(sg.ShapeError):
        add_at_axis(a34, _indices([0, 1]), 0, sg.ones((2, 3)))


def test_axis_form_dtype_check(a34):
    with pytest.raises(sg.DtypeError):
        add_at_axis(a34, _indices([0]), 0, sg.ones((1, 4), dtype=sg.float64))


def test_axis_form_backward(device):
    rng = np.random.default_rng(3)
    a = sg.array(rng.standard_normal((4, 3)).astype(np.float32), device=device).require_grad()
    b = sg.array(rng.standard_normal((2, 3)).astype(np.float32), device=device).require_grad()
    ind = _indices([3, 3], device)
    out = add_at_axis(a, ind, 0, b)
    g_np = rng.standard_normal((4, 3)).astype(np.float32)
    out.backward(sg.array(g_np, device=device))
    np.testing.assert_array_equal(a.grad.to_numpy(), g_np)
    np.testing.assert_array_equal(b.grad.to_numpy(), g_np[[3, 3]])
