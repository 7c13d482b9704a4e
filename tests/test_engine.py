import math
import warnings

import numpy as np
import pytest

from scalargrad.engine import Operation, Value, backward, topological_order


def numerical_grad(f, xs, i, h=1e-6):
    """Centered finite difference of f with respect to xs[i]."""
    up = list(xs)
    down = list(xs)
    up[i] += h
    down[i] -= h
    return (f(*[Value(x) for x in up]).data - f(*[Value(x) for x in down]).data) / (2 * h)


def analytic_grads(f, xs):
    leaves = [Value(x) for x in xs]
    f(*leaves).backward()
    return [v.grad for v in leaves]


BINARY_OPS = [
    ("add", lambda a, b: a + b),
    ("sub", lambda a, b: a - b),
    ("mul", lambda a, b: a * b),
    ("div", lambda a, b: a / b),
]

UNARY_OPS = [
    ("square", lambda a: a ** 2),
    ("cube", lambda a: a ** 3),
    ("reciprocal", lambda a: a ** -1),
    ("exp", lambda a: a.exp()),
    ("tanh", lambda a: a.tanh()),
    ("relu", lambda a: a.relu()),
    ("sigmoid", lambda a: a.sigmoid()),
    ("negate", lambda a: -a),
]


def test_forward_values():
    x, y = 3.0, -2.0
    a, b = Value(x), Value(y)
    assert a.add(b).data == x + y
    assert a.sub(b).data == x - y
    assert a.mul(b).data == x * y
    assert a.div(b).data == x / y
    assert a.pow(3).data == x ** 3
    assert a.exp().data == pytest.approx(math.exp(x))
    assert b.tanh().data == pytest.approx(math.tanh(y))
    assert b.relu().data == 0.0
    assert a.relu().data == x
    assert b.sigmoid().data == pytest.approx(1 / (1 + math.exp(-y)))
    assert a.negate().data == -x


def test_literals_are_promoted_to_leaves():
    a = Value(4.0, name="a")
    c = a + 2
    assert c.data == 6.0
    lit = c.children[1]
    assert lit.children == ()
    assert lit.name == "2.00"
    assert (2 - a).data == -2.0
    assert (2 / a).data == 0.5
    assert (3 * a).data == 12.0
    assert (1 + a).data == 5.0


@pytest.mark.parametrize("name,f", BINARY_OPS)
@pytest.mark.parametrize("xs", [(2.0, -3.0), (-0.5, 0.01), (0.001, 4.0)])
def test_binary_gradients_match_finite_differences(name, f, xs):
    grads = analytic_grads(f, xs)
    for i in range(2):
        assert grads[i] == pytest.approx(numerical_grad(f, xs, i), rel=1e-4, abs=1e-6)


@pytest.mark.parametrize("name,f", UNARY_OPS)
@pytest.mark.parametrize("x", [-1.3, 0.01, 2.0])
def test_unary_gradients_match_finite_differences(name, f, x):
    (grad,) = analytic_grads(f, [x])
    assert grad == pytest.approx(numerical_grad(f, [x], 0), rel=1e-4, abs=1e-6)


def test_fractional_power_gradient():
    f = lambda a: a ** 0.5
    (grad,) = analytic_grads(f, [2.0])
    assert grad == pytest.approx(numerical_grad(f, [2.0], 0), rel=1e-4)


def test_subtract_gives_negative_gradient_to_right_operand():
    a, b = Value(5.0), Value(3.0)
    (a - b).backward()
    assert a.grad == 1.0
    assert b.grad == -1.0


def test_divide_gradient_to_denominator():
    a, b = Value(6.0), Value(3.0)
    (a / b).backward()
    assert a.grad == pytest.approx(1 / 3)
    assert b.grad == pytest.approx(-6.0 / 9.0)


def test_area_scenario():
    length = Value(15, name="length")
    width = Value(200, name="width")
    area = length * width
    assert area.data == 3000
    area.backward()
    assert length.grad == 200
    assert width.grad == 15


def test_gradient_accumulates_over_shared_use():
    a = Value(3.0)
    d = a * a
    d.backward()
    assert a.grad == 2 * a.data


def test_diamond_graph():
    x = Value(2.0)
    y = Value(-4.0)
    q = (x + y) * (x + 1)
    q.backward()
    assert q.data == -6.0
    assert x.grad == 1.0
    assert y.grad == 3.0


def test_topological_order_children_first_and_unique():
    x = Value(2.0, name="x")
    y = Value(3.0, name="y")
    s = x * y
    t = s + x
    root = t * s
    order = topological_order(root)

    assert len(order) == len(set(order)) == 5
    position = {v: i for i, v in enumerate(order)}
    for v in order:
        for child in v.children:
            assert position[child] < position[v]
    assert order[-1] is root


def test_deep_graph_does_not_recurse():
    x = Value(1.0, name="x")
    y = x
    for _ in range(5000):
        y = (y + x).relabel("y")
    y.backward()
    assert x.grad == 5001


def test_leaf_backward():
    a = Value(7.0)
    a.backward()
    assert a.grad == 1.0


def test_backward_from_interior_node():
    x, y, w = Value(2.0), Value(3.0), Value(4.0)
    xy = x * y
    z = xy + w
    xy.backward()
    assert x.grad == 3.0
    assert y.grad == 2.0
    assert w.grad == 0.0
    assert z.grad == 0.0


def test_repeated_backward_accumulates_unless_zeroed():
    x, y = Value(2.0), Value(3.0)
    z = x * y
    z.backward()
    z.backward()
    assert x.grad == 6.0

    backward(z, zero_grad=True)
    assert x.grad == 3.0
    assert y.grad == 2.0
    assert z.grad == 1.0


def test_determinism():
    def run():
        a, b, c = Value(0.3), Value(-1.2), Value(2.5)
        out = ((a * b).tanh() + c.exp() / b) ** 2
        out.backward()
        return out.data, [a.grad, b.grad, c.grad]

    assert run() == run()


def test_degenerate_operations_propagate_inf_and_nan():
    assert np.isinf((Value(1.0) / Value(0.0)).data)
    assert np.isnan((Value(-2.0) ** 0.5).data)
    assert np.isinf(Value(1000.0).exp().data)

    a, b = Value(1.0), Value(0.0)
    (a / b).backward()
    assert np.isinf(a.grad)


def test_graph_metadata():
    a = Value(1.0, name="a", neuron_id="n", layer_id="l")
    b = Value(2.0, name="b")
    c = a * b
    assert c.op == Operation.MUL
    assert c.children == (a, b)
    assert c.name == "a*b"
    assert c.neuron_id == "n"
    assert c.layer_id == "l"
    assert a.op == Operation.ASSIGN
    assert (a ** 2).exponent == 2
    assert len({a.id, b.id, c.id}) == 3


def test_relabel():
    a = Value(1.0, name="a", neuron_id="n")
    assert a.relabel("b", layer_id="l") is a
    assert a.name == "b"
    assert a.neuron_id == "n"
    assert a.layer_id == "l"


def test_power_requires_plain_number():
    with pytest.raises(AssertionError):
        Value(2.0) ** Value(2.0)


def test_unsupported_operand_type():
    with pytest.raises(TypeError):
        Value(1.0) + "a"
    with pytest.raises(TypeError):
        "a" * Value(1.0)


def test_degenerate_arithmetic_does_not_warn():
    inf = Value(1.0) / Value(0.0)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert np.isinf((Value(1e200) * Value(1e200)).data)
        assert np.isinf((Value(1.7e308) + Value(1.7e308)).data)
        assert np.isinf((Value(-1.7e308) - Value(1.7e308)).data)
        assert np.isnan((inf - inf).data)
        assert np.isnan((inf * 0).data)
