import math
import unittest

from src.keygrad.domain._backward_config import BackwardConfig
from src.keygrad.domain._errors import AccumulatorStateError
from src.keygrad.infrastructure.values._factories import ScalarValueFactory
from src.keygrad.infrastructure.values._scalar import ScalarValue


def scalar(value: float, requires_grad: bool = False) -> ScalarValue:
    return ScalarValueFactory().scalar(value, requires_grad=requires_grad)


class TestScalarScenarios(unittest.TestCase):
    def test_expression_graph_gradients(self) -> None:
        a = scalar(-4.0, requires_grad=True)
        b = scalar(2.0, requires_grad=True)

        c = a + b
        d = a * b + b * b * b
        c = c + (c + 1)
        c = c + (1 + c - a)
        d = d + (d * 2 + (b + a).relu())
        d = d + (3 * d + (b - a).relu())
        e = c - d
        f = e * e
        g = f / 2.0
        g = g + 10.0 / f

        self.assertAlmostEqual(g.item, 24.70, delta=0.01)

        g.backward()
        self.assertAlmostEqual(a.grad.item, 138.83, delta=0.01)
        self.assertAlmostEqual(b.grad.item, 645.58, delta=0.01)

    def test_hessian_vector_product_keeps_gradient_handles(self) -> None:
        x = scalar(0.5, requires_grad=True)
        y = scalar(0.6, requires_grad=True)
        z = x * x + y * x + y * y

        z.backward(BackwardConfig().with_keep_graph(True))
        gx, gy = x.grad, y.grad
        self.assertAlmostEqual(gx.item, 1.6, delta=0.01)
        self.assertAlmostEqual(gy.item, 1.7, delta=0.01)

        grad_sum = gx * 2 + gy
        grad_sum.backward()

        self.assertIs(x.grad, gx)
        self.assertIs(y.grad, gy)
        self.assertAlmostEqual(gx.item, 6.6, delta=0.001)
        self.assertAlmostEqual(gy.item, 5.7, delta=0.001)

    def test_add_without_gradients(self) -> None:
        a = scalar(2.6)
        b = scalar(3.6)
        c = a.add(b)

        self.assertAlmostEqual(c.item, 6.2)
        self.assertEqual(len(c.value_node.prev), 2)
        self.assertIs(c.value_node.prev[0], a.value_node)
        self.assertIs(c.value_node.prev[1], b.value_node)
        self.assertFalse(c.requires_grad)
        self.assertIsNone(a.grad)
        self.assertIsNone(b.grad)
        self.assertIsNone(c.grad)

    def test_leaf_accumulator_rejects_direct_assignment(self) -> None:
        x = scalar(1.0)
        with self.assertRaises(AccumulatorStateError):
            x.grad_node.set_value(lambda: scalar(0.0))


class TestScalarForward(unittest.TestCase):
    def test_forward_is_lazy_and_memoized(self) -> None:
        calls = []

        def produce() -> float:
            calls.append(1)
            return 2.0

        x = ScalarValue(produce)
        y = x.mul(3.0)
        z = x.add(y)
        self.assertEqual(calls, [])

        self.assertAlmostEqual(z.item, 8.0)
        self.assertAlmostEqual(y.item, 6.0)
        self.assertEqual(calls, [1])

    def test_op_labels(self) -> None:
        x = scalar(1.0)
        self.assertEqual(x.add(x).value_node.op, "add")
        self.assertEqual(x.relu().value_node.op, "relu")
        self.assertIsNone(x.value_node.op)

    def test_binary_result_requires_grad_if_either_operand_does(self) -> None:
        a, b = scalar(1.0), scalar(2.0, requires_grad=True)
        self.assertTrue(a.mul(b).requires_grad)
        self.assertTrue(b.mul(a).requires_grad)
        self.assertFalse(a.mul(a).requires_grad)
        self.assertFalse(a.mul(b).create_graph)

    def test_unary_result_inherits_flags(self) -> None:
        x = scalar(1.0, requires_grad=True)
        self.assertTrue(x.neg().requires_grad)
        self.assertFalse(scalar(1.0).neg().requires_grad)


class TestScalarGradients(unittest.TestCase):
    def grads(self, fn, *values):
        leaves = [scalar(v, requires_grad=True) for v in values]
        out = fn(*leaves)
        out.backward()
        return out.item, [leaf.grad.item for leaf in leaves]

    def test_sub(self) -> None:
        out, (gx, gy) = self.grads(lambda x, y: x - y, 5.0, 3.0)
        self.assertAlmostEqual(out, 2.0)
        self.assertAlmostEqual(gx, 1.0)
        self.assertAlmostEqual(gy, -1.0)

    def test_div(self) -> None:
        out, (gx, gy) = self.grads(lambda x, y: x / y, 6.0, 3.0)
        self.assertAlmostEqual(out, 2.0)
        self.assertAlmostEqual(gx, 1.0 / 3.0)
        self.assertAlmostEqual(gy, -6.0 / 9.0)

    def test_number_operands(self) -> None:
        cases = [
            (lambda x: x + 2, 6.0, 1.0),
            (lambda x: 2 + x, 6.0, 1.0),
            (lambda x: x - 2, 2.0, 1.0),
            (lambda x: 10 - x, 6.0, -1.0),
            (lambda x: x * 3, 12.0, 3.0),
            (lambda x: x / 2, 2.0, 0.5),
            (lambda x: 8 / x, 2.0, -0.5),
            (lambda x: -x, -4.0, -1.0),
        ]
        for fn, expected, expected_grad in cases:
            with self.subTest(expected=expected):
                out, (g,) = self.grads(fn, 4.0)
                self.assertAlmostEqual(out, expected)
                self.assertAlmostEqual(g, expected_grad)

    def test_relu(self) -> None:
        out, (g,) = self.grads(lambda x: x.relu(), -2.0)
        self.assertEqual(out, 0.0)
        self.assertEqual(g, 0.0)

        out, (g,) = self.grads(lambda x: x.relu(), 2.0)
        self.assertEqual(out, 2.0)
        self.assertEqual(g, 1.0)

    def test_exp_log(self) -> None:
        out, (g,) = self.grads(lambda x: x.exp(), 1.0)
        self.assertAlmostEqual(out, math.e)
        self.assertAlmostEqual(g, math.e)

        out, (g,) = self.grads(lambda x: x.log(), 2.0)
        self.assertAlmostEqual(out, math.log(2.0))
        self.assertAlmostEqual(g, 0.5)

    def test_sigmoid(self) -> None:
        out, (g,) = self.grads(lambda x: x.sigmoid(), 0.0)
        self.assertAlmostEqual(out, 0.5)
        self.assertAlmostEqual(g, 0.25)

    def test_pow(self) -> None:
        out, (g,) = self.grads(lambda x: x**3, 3.0)
        self.assertAlmostEqual(out, 27.0)
        self.assertAlmostEqual(g, 27.0)

    def test_second_derivative_of_pow(self) -> None:
        x = scalar(2.0, requires_grad=True)
        (x**3).backward(BackwardConfig(keep_graph=True))
        first = x.grad
        self.assertAlmostEqual(first.item, 12.0)

        # d/dx (3x^2) = 6x, added onto the first-order gradient
        first.backward()
        self.assertIs(x.grad, first)
        self.assertAlmostEqual(first.item, 24.0)


class TestPublicApiDocumentation(unittest.TestCase):
    def test_scalar_operations_are_documented(self) -> None:
        for name in (
            "add", "sub", "mul", "div", "neg", "pow",
            "relu", "exp", "log", "sigmoid", "item",
            "create_autograd_value", "multiplicative_identity", "additive_identity",
        ):
            with self.subTest(name=name):
                self.assertTrue(getattr(ScalarValue, name).__doc__)

    def test_engine_accessors_are_documented(self) -> None:
        for name in (
            "data", "data_", "context", "requires_grad", "requires_grad_",
            "create_graph", "name", "name_", "instance", "value_node",
            "grad_node", "grad", "registry", "close", "get_initial_instance",
            "backward", "swap_with",
        ):
            with self.subTest(name=name):
                self.assertTrue(getattr(ScalarValue, name).__doc__)


if __name__ == "__main__":
    unittest.main()
