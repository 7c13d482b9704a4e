"""
Training loop for scalargrad networks.
"""

import logging

from scalargrad.engine import Value
from scalargrad.nn import DimensionError

logger = logging.getLogger(__name__)


def squared_error(outputs, expected):
    """
    Sum of (predicted - expected)² over every example and output position.

    Args:
        outputs: One list of output Values per example
        expected: One list of target numbers per example

    Returns:
        A single loss Value named 'loss'
    """
    if len(outputs) != len(expected):
        raise DimensionError("expected outputs", len(outputs), len(expected))

    loss = Value(0.0, name="loss")
    for predicted, target in zip(outputs, expected):
        if len(predicted) != len(target):
            raise DimensionError("expected output width", len(predicted), len(target))
        for p, t in zip(predicted, target):
            loss = (loss + (p - t) ** 2).relabel("loss")
    return loss


def gradient_descent(mlp, inputs, expected, iterations, step_size):
    """
    Train a network with plain gradient descent.

    Each iteration runs a forward pass over every example, sums the squared
    error into one loss Value, zeroes the parameter gradients, backpropagates
    from the loss and moves every parameter against its gradient:

        p.data -= step_size * p.grad

    A fresh graph is built every iteration; only the parameters persist.

    Args:
        mlp: The network (any Module that is callable on one example)
        inputs: One list of input numbers per example
        expected: One list of target numbers per example
        iterations: Number of iterations to run (at least 1)
        step_size: Learning rate

    Returns:
        (results, loss) of the last iteration, where results holds the output
        Values of every example and loss is computed before that iteration's
        update.

    Example:
        >>> mlp = MLP(3, [4, 4, 1])
        >>> results, loss = gradient_descent(mlp, xs, ys, 500, 0.01)
    """
    if iterations < 1:
        raise ValueError(f"iterations must be at least 1, got {iterations}")
    if len(inputs) != len(expected):
        raise DimensionError("expected outputs", len(inputs), len(expected))

    params = mlp.parameters()
    for it in range(iterations):
        # Forward pass
        results = [mlp(x) for x in inputs]
        loss = squared_error(results, expected)

        # Backward pass
        mlp.zero_grad()
        loss.backward()

        # Update
        for p in params:
            p.data -= step_size * p.grad

        logger.debug("iteration %d: loss=%.6f", it, loss.data)

    logger.info("gradient_descent: %d iterations, %d examples, final loss=%.6f",
                iterations, len(inputs), loss.data)
    return results, loss
