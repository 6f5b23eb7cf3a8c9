import unittest

from src.keygrad.domain._backward_config import BackwardConfig
from src.keygrad.domain._errors import AccumulatorStateError, GraphStructureError
from src.keygrad.domain._node import IGradNode, INode, IValueNode
from src.keygrad.infrastructure._node import GradNode, ValueNode
from src.keygrad.infrastructure._node_wrapper import ValueNodeWrapper


def _add(a, b):
    return a + b


class TestValueNode(unittest.TestCase):
    def test_leaf_defaults(self) -> None:
        node = ValueNode(lambda: 3)
        self.assertEqual(node.get_value(), 3)
        self.assertEqual(node.prev, [])
        self.assertIsNone(node.backward_function)
        self.assertIsNone(node.op)

    def test_value_is_resolved_on_each_call(self) -> None:
        box = {"v": 1}
        node = ValueNode(lambda: box["v"])
        box["v"] = 2
        self.assertEqual(node.get_value(), 2)

    def test_prev_preserves_order(self) -> None:
        a, b = ValueNode(lambda: 1), ValueNode(lambda: 2)
        node = ValueNode(lambda: 3, [a, b], op="add")
        self.assertEqual(len(node.prev), 2)
        self.assertIs(node.prev[0], a)
        self.assertIs(node.prev[1], b)
        self.assertIn("add", repr(node))

    def test_backward_without_function_is_noop(self) -> None:
        ValueNode(lambda: 1).backward(BackwardConfig())

    def test_backward_calls_function_with_value_and_config(self) -> None:
        seen = []
        node = ValueNode(lambda: 7)
        node.set_backward_function(lambda v, cfg: seen.append((v, cfg)))

        cfg = BackwardConfig(keep_graph=True)
        node.backward(cfg)
        self.assertEqual(seen, [(7, cfg)])

    def test_satisfies_protocols(self) -> None:
        node = ValueNode(lambda: 1)
        self.assertIsInstance(node, INode)
        self.assertIsInstance(node, IValueNode)

    def test_convert_returns_wrapper(self) -> None:
        node = ValueNode(lambda: 2)
        converted = node.convert(lambda v: v * 10, lambda w: w // 10)
        self.assertIsInstance(converted, ValueNodeWrapper)
        self.assertEqual(converted.get_value(), 20)


class TestGradNode(unittest.TestCase):
    def test_fresh_node_is_unset(self) -> None:
        node = GradNode()
        self.assertIsNone(node.value)
        self.assertIsNone(node.native_grad())
        self.assertFalse(node.disable_native_gradient)
        self.assertIsInstance(node, IGradNode)

    def test_prev_is_materialized_on_access(self) -> None:
        node = GradNode()
        self.assertEqual(node.prev, [])
        self.assertIs(node.prev, node.prev)

    def test_set_value_once(self) -> None:
        node = GradNode()
        node.set_value(lambda: 4.0)
        self.assertEqual(node.value, 4.0)

        with self.assertRaises(AccumulatorStateError):
            node.set_value(lambda: 5.0)
        self.assertEqual(node.value, 4.0)

    def test_set_value_rejected_with_installed_empty_supplier(self) -> None:
        node = GradNode(lambda: None)
        self.assertIsNone(node.value)
        with self.assertRaises(AccumulatorStateError):
            node.set_value(lambda: 1.0)

    def test_add_stores_then_folds(self) -> None:
        node = GradNode(lambda: None)
        node.add_(1.5, _add)
        self.assertEqual(node.value, 1.5)

        node.add_(2.0, _add).add_(0.5, _add)
        self.assertEqual(node.value, 4.0)

    def test_add_does_not_call_add_function_on_first_value(self) -> None:
        calls = []

        def tracking_add(a, b):
            calls.append((a, b))
            return a + b

        node = GradNode()
        node.add_(1.0, tracking_add)
        self.assertEqual(calls, [])
        node.add_(2.0, tracking_add)
        self.assertEqual(calls, [(1.0, 2.0)])

    def test_fold_into_node_with_prev_raises(self) -> None:
        node = GradNode(lambda: None, prev=[ValueNode(lambda: 0)])
        node.add_(1.0, _add)

        with self.assertRaises(GraphStructureError) as cm:
            node.add_(1.0, _add)
        self.assertEqual(cm.exception.num_prev, 1)
        self.assertFalse(cm.exception.has_backward)

    def test_fold_into_node_with_backward_function_raises(self) -> None:
        node = GradNode(lambda: None, backward_function=lambda v, c: None)
        node.add_(1.0, _add)
        with self.assertRaises(GraphStructureError) as cm:
            node.add_(1.0, _add)
        self.assertTrue(cm.exception.has_backward)

    def test_clear_and_rebind(self) -> None:
        node = GradNode()
        node.add_(1.0, _add)
        node.clear()
        self.assertIsNone(node.value)

        node.add_(3.0, _add)
        self.assertEqual(node.value, 3.0)

        node.rebind(9.0)
        self.assertEqual(node.value, 9.0)

    def test_native_gradient_supplier(self) -> None:
        node = GradNode(lambda: None, lambda: 42.0)
        self.assertEqual(node.native_grad(), 42.0)

        node.native_gradient_supplier = None
        self.assertIsNone(node.native_grad())

        node.disable_native_gradient = True
        self.assertTrue(node.disable_native_gradient)

    def test_convert_maps_value_and_backward(self) -> None:
        seen = []
        node = GradNode(
            lambda: 2.0, backward_function=lambda v, cfg: seen.append(v)
        )
        converted = node.convert(lambda v: str(v), lambda w: float(w))

        self.assertEqual(converted.value, "2.0")
        self.assertIs(converted.prev, node.prev)
        self.assertIsNone(converted.native_grad())

        converted.backward(BackwardConfig())
        self.assertEqual(seen, [2.0])

    def test_convert_of_unset_node_is_unset(self) -> None:
        converted = GradNode(lambda: None).convert(str, float)
        self.assertIsNone(converted.value)
        self.assertIsNone(converted.backward_function)


if __name__ == "__main__":
    unittest.main()
