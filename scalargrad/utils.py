"""
Visualization utilities for scalargrad computational graphs.

This module exposes the graph built by Value objects to renderers: the
reachable nodes and edges, and a Graphviz diagram of them grouped by the
Layer and Neuron that produced each Value.
"""

from collections import defaultdict

from graphviz import Digraph

from scalargrad.engine import topological_order


def trace(root):
    """
    Collect the computational graph reachable from a root Value.

    Args:
        root: A Value object representing the output of a computation

    Returns:
        tuple: (nodes, edges) where:
            - nodes: list of all Values, children before parents
            - edges: list of (child, parent) tuples, one per operand

    Example:
        >>> x = Value(2.0)
        >>> y = Value(3.0)
        >>> z = x * y + x
        >>> nodes, edges = trace(z)
        >>> len(nodes)  # x, y, x*y and z
        4
    """
    nodes = topological_order(root)
    edges = [(child, v) for v in nodes for child in v.children]
    return nodes, edges


def _label(v):
    return f'{{ {v.name} | {{ data {v.data:.4f} | grad {v.grad:.4f} }} }}'


def draw_dot(root, format='svg', rankdir='LR', cluster=True):
    """
    Visualize the computational graph of a Value object as a directed graph.

    Creates a Graphviz diagram showing:
    - Value nodes with their name, data and gradient
    - Operation nodes (+, *, tanh, etc.)
    - Edges showing data flow through the computation
    - With cluster=True, one box per Layer holding one box per Neuron

    Args:
        root: A Value object (typically the loss) to visualize from
        format: Output format ('svg', 'png', 'pdf', etc.)
        rankdir: Graph direction - 'LR' (left-right) or 'TB' (top-bottom)
        cluster: Group Values by the Layer and Neuron that produced them

    Returns:
        Digraph: A graphviz Digraph object that can be rendered or displayed

    Note:
        Rendering requires the graphviz system package
        (apt install graphviz / brew install graphviz).
    """
    assert rankdir in ['LR', 'TB'], "rankdir must be 'LR' (left-right) or 'TB' (top-bottom)"

    nodes, edges = trace(root)

    dot = Digraph(format=format, graph_attr={'rankdir': rankdir})

    # layer id -> neuron id -> values
    groups = defaultdict(lambda: defaultdict(list))
    for v in nodes:
        if cluster:
            groups[v.layer_id][v.neuron_id].append(v)
        else:
            groups[''][''].append(v)

    def add_values(g, values):
        for v in values:
            g.node(name=v.id, label=_label(v), shape='record')
            # Values produced by an operation get an operation node
            if v.children:
                g.node(name=v.id + v.op.value, label=v.op.value)
                g.edge(v.id + v.op.value, v.id)

    for layer_id, neurons in groups.items():
        for neuron_id, values in neurons.items():
            if not layer_id and not neuron_id:
                add_values(dot, values)
            elif not layer_id:
                with dot.subgraph(name=f'cluster_{neuron_id}') as n:
                    n.attr(label=neuron_id, style='dashed')
                    add_values(n, values)
            else:
                with dot.subgraph(name=f'cluster_{layer_id}') as lay:
                    lay.attr(label=layer_id)
                    if neuron_id:
                        with lay.subgraph(name=f'cluster_{neuron_id}') as n:
                            n.attr(label=neuron_id, style='dashed')
                            add_values(n, values)
                    else:
                        add_values(lay, values)

    for child, parent in edges:
        dot.edge(child.id, parent.id + parent.op.value)

    return dot
