import dataclasses
import unittest

from src.keygrad.domain._backward_config import BackwardConfig


class TestBackwardConfig(unittest.TestCase):
    def test_defaults_are_false(self) -> None:
        cfg = BackwardConfig()
        self.assertFalse(cfg.keep_graph)
        self.assertFalse(cfg.zero_grad)

    def test_with_keep_graph_returns_new_instance(self) -> None:
        cfg = BackwardConfig()
        kept = cfg.with_keep_graph(True)

        self.assertIsNot(kept, cfg)
        self.assertTrue(kept.keep_graph)
        self.assertFalse(kept.zero_grad)
        self.assertFalse(cfg.keep_graph)

    def test_with_zero_grad_preserves_keep_graph(self) -> None:
        cfg = BackwardConfig().with_keep_graph(True).with_zero_grad(True)
        self.assertTrue(cfg.keep_graph)
        self.assertTrue(cfg.zero_grad)

        cleared = cfg.with_zero_grad(False)
        self.assertTrue(cleared.keep_graph)
        self.assertFalse(cleared.zero_grad)

    def test_is_frozen(self) -> None:
        cfg = BackwardConfig()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            cfg.keep_graph = True  # type: ignore[misc]

    def test_equality_and_hash(self) -> None:
        a = BackwardConfig(keep_graph=True)
        b = BackwardConfig().with_keep_graph(True)
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertNotEqual(a, BackwardConfig())


if __name__ == "__main__":
    unittest.main()
