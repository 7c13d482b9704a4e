import uuid
from enum import Enum

import numpy as np

# Degenerate operations (x/0, negative base to a fractional power, exp overflow)
# produce inf/nan instead of warnings.
_FLOAT_ERRORS = dict(divide='ignore', invalid='ignore', over='ignore')


class Operation(str, Enum):
    """Tag describing the operation that produced a Value."""

    ASSIGN = '='
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    POW = 'pow'
    EXP = 'exp'
    TANH = 'tanh'
    RELU = 'relu'
    SIGMOID = 'sigmoid'


class Value:
    """
    Wraps a single scalar and tracks operations for automatic differentiation.

    Every arithmetic operation returns a new Value that remembers its operands
    (children) and the operation tag that produced it. Nothing executable is
    stored on the node: the backward pass looks up the local derivative rule
    for the tag.

    Example:
        >>> length = Value(15, name='length')
        >>> width = Value(200, name='width')
        >>> area = length * width
        >>> area.backward()
        >>> length.grad  # d(area)/d(length) = 200.0
    """

    def __init__(self, data, _children=(), _op=Operation.ASSIGN, name="",
                 neuron_id="", layer_id="", kind="default", _exponent=None):
        """
        Initialize a Value object.

        Args:
            data: The scalar value (stored as a 64-bit float)
            _children: Operands consumed to produce this Value (internal)
            _op: Operation tag that created this Value (internal)
            name: Optional name for debugging and visualization
            neuron_id: Id of the Neuron that produced this Value, if any
            layer_id: Id of the Layer that produced this Value, if any
            kind: One of 'default', 'input', 'weight' or 'output'
            _exponent: Exponent of a 'pow' node (internal)
        """
        self._id = str(uuid.uuid4())
        self.data = np.float64(data)
        self.grad = 0.0
        self.name = name

        # Grouping tags, only read by visualization
        self.neuron_id = neuron_id
        self.layer_id = layer_id
        self.kind = kind

        # Graph structure, fixed at construction
        self._prev = tuple(_children)
        self._op = Operation(_op)
        self._exponent = _exponent

    @property
    def id(self):
        return self._id

    @property
    def children(self):
        """Operands of this Value, in operation order."""
        return self._prev

    @property
    def op(self):
        return self._op

    @property
    def exponent(self):
        return self._exponent

    def _result(self, data, children, op, name, exponent=None):
        return Value(data, children, op, name=name, neuron_id=self.neuron_id,
                     layer_id=self.layer_id, _exponent=exponent)

    @staticmethod
    def _coerce(other):
        """Promote a plain number to a leaf Value named after the literal."""
        if isinstance(other, Value):
            return other
        if not isinstance(other, (int, float, np.number)):
            raise TypeError(f"unsupported operand type {type(other).__name__}")
        return Value(other, name=f"{other:.2f}")

    def add(self, other):
        """a + b"""
        other = self._coerce(other)
        with np.errstate(**_FLOAT_ERRORS):
            data = self.data + other.data
        return self._result(data, (self, other), Operation.ADD,
                            f"{self.name}+{other.name}")

    def sub(self, other):
        """a - b"""
        other = self._coerce(other)
        with np.errstate(**_FLOAT_ERRORS):
            data = self.data - other.data
        return self._result(data, (self, other), Operation.SUB,
                            f"{self.name}-{other.name}")

    def mul(self, other):
        """a * b"""
        other = self._coerce(other)
        with np.errstate(**_FLOAT_ERRORS):
            data = self.data * other.data
        return self._result(data, (self, other), Operation.MUL,
                            f"{self.name}*{other.name}")

    def div(self, other):
        """a / b. Division by zero yields inf or nan."""
        other = self._coerce(other)
        with np.errstate(**_FLOAT_ERRORS):
            data = self.data / other.data
        return self._result(data, (self, other), Operation.DIV,
                            f"{self.name}/{other.name}")

    def pow(self, exponent):
        """
        Raise to a plain number power.

        Example:
            >>> x = Value(3.0)
            >>> y = x.pow(2)  # y.data = 9.0
        """
        assert isinstance(exponent, (int, float)), "Only supporting int/float powers"
        with np.errstate(**_FLOAT_ERRORS):
            data = self.data ** exponent
        return self._result(data, (self,), Operation.POW,
                            f"pow({self.name}, {exponent})", exponent=exponent)

    def exp(self):
        """e raised to this Value."""
        with np.errstate(**_FLOAT_ERRORS):
            data = np.exp(self.data)
        return self._result(data, (self,), Operation.EXP, f"exp({self.name})")

    def tanh(self):
        """Hyperbolic tangent, squashes into (-1, 1)."""
        return self._result(np.tanh(self.data), (self,), Operation.TANH,
                            f"tanh({self.name})")

    def relu(self):
        """
        ReLU (Rectified Linear Unit) activation: max(0, x)

        Example:
            >>> y = Value(-1.0).relu()  # y.data = 0.0
        """
        return self._result(np.maximum(0.0, self.data), (self,), Operation.RELU,
                            f"relu({self.name})")

    def sigmoid(self):
        """
        Sigmoid activation: σ(x) = 1 / (1 + e^(-x))

        Squashes input to range (0, 1).
        """
        # For x < 0 use e^x / (1 + e^x) so exp never overflows
        if self.data >= 0:
            data = 1 / (1 + np.exp(-self.data))
        else:
            e = np.exp(self.data)
            data = e / (1 + e)
        return self._result(data, (self,), Operation.SIGMOID,
                            f"sigmoid({self.name})")

    def negate(self):
        """-x = x * -1"""
        return self.mul(-1)

    def relabel(self, name, neuron_id=None, layer_id=None):
        """
        Rename this Value in place and return it.

        The ids are left unchanged when not given.
        """
        self.name = name
        if neuron_id is not None:
            self.neuron_id = neuron_id
        if layer_id is not None:
            self.layer_id = layer_id
        return self

    def backward(self, zero_grad=False):
        """
        Backpropagate from this Value: fill in the gradient of every Value it
        was computed from.

        Gradients accumulate. Pass zero_grad=True (or zero the parameters
        yourself) when running backward repeatedly over shared Values.
        """
        backward(self, zero_grad=zero_grad)

    # Operator overloads

    def __add__(self, other):
        return self.add(other)

    def __radd__(self, other):
        return self._coerce(other).add(self)

    def __sub__(self, other):
        return self.sub(other)

    def __rsub__(self, other):
        return self._coerce(other).sub(self)

    def __mul__(self, other):
        return self.mul(other)

    def __rmul__(self, other):
        return self._coerce(other).mul(self)

    def __truediv__(self, other):
        return self.div(other)

    def __rtruediv__(self, other):
        return self._coerce(other).div(self)

    def __pow__(self, exponent):
        return self.pow(exponent)

    def __neg__(self):
        return self.negate()

    def __repr__(self):
        name_str = f"'{self.name}' " if self.name else ""
        op_str = f" from {self._op.value}" if self._prev else ""
        return f"Value({name_str}data={self.data}, grad={self.grad}{op_str})"


# Local derivative rules, one per operation tag. Each receives the result node
# and accumulates into its children.

def _backward_leaf(out):
    pass


def _backward_add(out):
    a, b = out._prev
    a.grad += out.grad
    b.grad += out.grad


def _backward_sub(out):
    a, b = out._prev
    a.grad += out.grad
    b.grad -= out.grad


def _backward_mul(out):
    a, b = out._prev
    a.grad += b.data * out.grad
    b.grad += a.data * out.grad


def _backward_div(out):
    a, b = out._prev
    a.grad += (1 / b.data) * out.grad
    b.grad += -(a.data / b.data ** 2) * out.grad


def _backward_pow(out):
    (a,) = out._prev
    p = out._exponent
    a.grad += p * a.data ** (p - 1) * out.grad


def _backward_exp(out):
    (a,) = out._prev
    a.grad += out.data * out.grad


def _backward_tanh(out):
    (a,) = out._prev
    a.grad += (1 - out.data ** 2) * out.grad


def _backward_relu(out):
    (a,) = out._prev
    if a.data > 0:
        a.grad += out.grad


def _backward_sigmoid(out):
    (a,) = out._prev
    a.grad += out.data * (1 - out.data) * out.grad


_BACKWARD_RULES = {
    Operation.ASSIGN: _backward_leaf,
    Operation.ADD: _backward_add,
    Operation.SUB: _backward_sub,
    Operation.MUL: _backward_mul,
    Operation.DIV: _backward_div,
    Operation.POW: _backward_pow,
    Operation.EXP: _backward_exp,
    Operation.TANH: _backward_tanh,
    Operation.RELU: _backward_relu,
    Operation.SIGMOID: _backward_sigmoid,
}


def topological_order(root):
    """
    Sort every Value reachable from root so that children come before parents.

    Each Value appears exactly once, however many parents share it. The walk
    uses an explicit stack, so deep graphs do not hit the recursion limit.
    """
    order = []
    visited = set()
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue
        if node in visited:
            continue
        visited.add(node)
        stack.append((node, True))
        # Reversed so the first child is emitted first
        for child in reversed(node._prev):
            if child not in visited:
                stack.append((child, False))
    return order


def backward(root, zero_grad=False):
    """
    Reverse-mode differentiation from root.

    Runs the backward rule of every reachable Value exactly once, root first
    and leaves last, so each Value has received the contributions of all its
    parents before passing its gradient on.

    Args:
        root: The Value to differentiate (typically the loss)
        zero_grad: Reset the gradient of every reachable Value first
    """
    topo = topological_order(root)

    if zero_grad:
        for v in topo:
            v.grad = 0.0

    # dL/dL = 1
    root.grad = 1.0

    with np.errstate(**_FLOAT_ERRORS):
        for v in reversed(topo):
            _BACKWARD_RULES[v._op](v)
