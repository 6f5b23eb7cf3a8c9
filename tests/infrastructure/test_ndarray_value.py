import unittest

import numpy as np

from src.keygrad.domain._backward_config import BackwardConfig
from src.keygrad.domain._errors import InvalidConstructionError
from src.keygrad.domain._size import Size
from src.keygrad.infrastructure.values._factories import NDArrayValueFactory
from src.keygrad.infrastructure.values._ndarray import NDArrayValue, sum_to_shape


class _Base(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = NDArrayValueFactory()

    def value(self, array, requires_grad: bool = False) -> NDArrayValue:
        return self.factory.from_numpy(np.asarray(array, dtype=np.float64), requires_grad)


class TestSumToShape(unittest.TestCase):
    def test_reduces_broadcast_axes(self) -> None:
        g = np.ones((2, 3))
        np.testing.assert_allclose(sum_to_shape(g, (3,)), [2.0, 2.0, 2.0])
        np.testing.assert_allclose(sum_to_shape(g, (2, 1)), [[3.0], [3.0]])
        np.testing.assert_allclose(sum_to_shape(g, ()), 6.0)
        self.assertEqual(sum_to_shape(g, ()).shape, ())

    def test_identity_shape_returns_copy(self) -> None:
        g = np.arange(6.0).reshape(2, 3)
        out = sum_to_shape(g, (2, 3))
        np.testing.assert_array_equal(out, g)
        self.assertFalse(np.shares_memory(out, g))

    def test_incompatible_shape_raises(self) -> None:
        with self.assertRaises(ValueError):
            sum_to_shape(np.ones((2, 3)), (2,))
        with self.assertRaises(ValueError):
            sum_to_shape(np.ones((3,)), (2, 3))


class TestFactory(_Base):
    def test_from_numpy_copies_input(self) -> None:
        arr = np.array([1.0, 2.0])
        v = self.factory.from_numpy(arr)
        arr[0] = 100.0

        np.testing.assert_array_equal(v.numpy(), [1.0, 2.0])
        self.assertEqual(v.context, Size(2))
        self.assertEqual(v.shape, (2,))

    def test_numpy_returns_copy(self) -> None:
        v = self.value([1.0, 2.0])
        out = v.numpy()
        out[0] = 5.0
        np.testing.assert_array_equal(v.numpy(), [1.0, 2.0])

    def test_dtype_is_applied(self) -> None:
        v = NDArrayValueFactory(dtype=np.float32).from_numpy([1, 2, 3])
        self.assertEqual(v.numpy().dtype, np.float32)
        self.assertEqual(v.dtype, np.float32)

    def test_create_rejects_none(self) -> None:
        with self.assertRaises(InvalidConstructionError):
            self.factory.create(None, Size(2))  # type: ignore[arg-type]

    def test_zeros(self) -> None:
        v = self.factory.zeros(2, 2, requires_grad=True)
        self.assertTrue(v.requires_grad)
        np.testing.assert_array_equal(v.numpy(), np.zeros((2, 2)))


class TestBroadcastingGradients(_Base):
    def test_add_broadcast_row(self) -> None:
        a = self.value(np.arange(6.0).reshape(2, 3), requires_grad=True)
        b = self.value([10.0, 20.0, 30.0], requires_grad=True)
        y = (a + b).sum()

        self.assertEqual(y.context, Size())
        np.testing.assert_allclose(y.numpy(), np.arange(6.0).sum() + 2 * 60.0)

        y.backward()
        np.testing.assert_allclose(a.grad.numpy(), np.ones((2, 3)))
        np.testing.assert_allclose(b.grad.numpy(), [2.0, 2.0, 2.0])

    def test_mul_broadcast_column(self) -> None:
        a_np = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        b_np = np.array([[2.0], [3.0]])
        a = self.value(a_np, requires_grad=True)
        b = self.value(b_np, requires_grad=True)

        (a * b).sum().backward()
        np.testing.assert_allclose(a.grad.numpy(), np.broadcast_to(b_np, (2, 3)))
        np.testing.assert_allclose(b.grad.numpy(), a_np.sum(axis=1, keepdims=True))

    def test_sub_and_div(self) -> None:
        a_np = np.array([4.0, 9.0])
        b_np = np.array([2.0, 3.0])
        a = self.value(a_np, requires_grad=True)
        b = self.value(b_np, requires_grad=True)

        (a / b - b).sum().backward()
        np.testing.assert_allclose(a.grad.numpy(), 1.0 / b_np)
        np.testing.assert_allclose(b.grad.numpy(), -a_np / b_np**2 - 1.0)

    def test_number_operands(self) -> None:
        a = self.value([1.0, 2.0], requires_grad=True)
        y = (a * 2.0 + 1.0).sum() + (1.0 - a).sum()

        np.testing.assert_allclose(y.numpy(), 8.0 - 1.0)
        y.backward()
        np.testing.assert_allclose(a.grad.numpy(), [1.0, 1.0])

    def test_incompatible_shapes_raise(self) -> None:
        with self.assertRaises(ValueError):
            self.value(np.ones((2, 3))) + self.value(np.ones(2))


class TestElementwise(_Base):
    def test_relu(self) -> None:
        a = self.value([-1.0, 0.0, 2.0], requires_grad=True)
        y = a.relu()
        np.testing.assert_allclose(y.numpy(), [0.0, 0.0, 2.0])

        y.sum().backward()
        np.testing.assert_allclose(a.grad.numpy(), [0.0, 1.0, 1.0])

    def test_exp_log_neg(self) -> None:
        x_np = np.array([0.5, 1.5])
        x = self.value(x_np, requires_grad=True)
        (x.exp() + x.log() - x).sum().backward()
        np.testing.assert_allclose(x.grad.numpy(), np.exp(x_np) + 1.0 / x_np - 1.0)

        y = self.value(x_np, requires_grad=True)
        (-y).sum().backward()
        np.testing.assert_allclose(y.grad.numpy(), [-1.0, -1.0])


class TestLinearAlgebra(_Base):
    def test_matmul(self) -> None:
        a_np = np.arange(6.0).reshape(2, 3)
        b_np = np.arange(12.0).reshape(3, 4) / 10.0
        a = self.value(a_np, requires_grad=True)
        b = self.value(b_np, requires_grad=True)

        y = a @ b
        self.assertEqual(y.context, Size(2, 4))
        np.testing.assert_allclose(y.numpy(), a_np @ b_np)

        y.sum().backward()
        ones = np.ones((2, 4))
        np.testing.assert_allclose(a.grad.numpy(), ones @ b_np.T)
        np.testing.assert_allclose(b.grad.numpy(), a_np.T @ ones)

    def test_matmul_shape_errors(self) -> None:
        with self.assertRaises(ValueError):
            self.value(np.ones((2, 3))).matmul(self.value(np.ones((2, 3))))
        with self.assertRaises(ValueError):
            self.value(np.ones(3)).matmul(self.value(np.ones((3, 1))))

    def test_transpose(self) -> None:
        a_np = np.arange(6.0).reshape(2, 3)
        a = self.value(a_np, requires_grad=True)
        w = self.value(np.arange(6.0).reshape(3, 2))

        t = a.t()
        self.assertEqual(t.context, Size(3, 2))
        np.testing.assert_allclose(t.numpy(), a_np.T)

        (t * w).sum().backward()
        np.testing.assert_allclose(a.grad.numpy(), w.numpy().T)

    def test_transpose_requires_2d(self) -> None:
        with self.assertRaises(ValueError):
            self.value([1.0, 2.0]).t()


class TestHigherOrder(_Base):
    def test_second_order_through_broadcast_and_sum(self) -> None:
        x = self.value([1.0, 2.0], requires_grad=True)
        (x * x * x).sum().backward(BackwardConfig(keep_graph=True))

        first = x.grad
        np.testing.assert_allclose(first.numpy(), [3.0, 12.0])

        first.sum().backward()
        self.assertIs(x.grad, first)
        np.testing.assert_allclose(first.numpy(), [9.0, 24.0])


if __name__ == "__main__":
    unittest.main()
