from __future__ import annotations

import importlib.util
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for primitive tests")
class ArithmeticPrimitiveTests(unittest.TestCase):
    def _run(self, source: str) -> str:
        from fixapl import run

        return run(source)

    def test_scalar_extension_both_sides(self) -> None:
        self.assertEqual(self._run("[1 ⋄ 2 ⋄ 3] + 10"), "[11 ⋄ 12 ⋄ 13]")
        self.assertEqual(self._run("10 - 1‿2‿3"), "[9 ⋄ 8 ⋄ 7]")
        self.assertEqual(self._run("1‿2 × 3‿4"), "[3 ⋄ 8]")

    def test_shape_mismatch(self) -> None:
        from fixapl import FixAPLShapeError, interpret

        with self.assertRaises(FixAPLShapeError):
            interpret("1‿2 + 1‿2‿3")

    def test_nested_arrays_pervade(self) -> None:
        self.assertEqual(self._run("⟨1 ⋄ 2‿3⟩ + 10"), "[11 ⋄ [12 ⋄ 13]]")

    def test_modulo_is_floored(self) -> None:
        self.assertEqual(self._run("7 % 3"), "1")
        self.assertEqual(self._run("¯7 % 3"), "2")

    def test_division_by_zero(self) -> None:
        self.assertEqual(self._run("1 ÷ 0"), "∞")
        self.assertEqual(self._run("¯1 ÷ 0"), "¯∞")
        self.assertEqual(self._run("0 ÷ 0"), "NaN")

    def test_rounding_family(self) -> None:
        self.assertEqual(self._run("⌊ ¯2.5"), "¯3")
        self.assertEqual(self._run("⌈ 2.1"), "3")
        self.assertEqual(self._run("⁅ 2.5"), "3")
        self.assertEqual(self._run("⁅ ¯2.5"), "¯2")

    def test_not_negate_min_max(self) -> None:
        self.assertEqual(self._run("¬ 0‿1"), "[1 ⋄ 0]")
        self.assertEqual(self._run("ng 3"), "¯3")
        self.assertEqual(self._run("3 ↧ 5"), "3")
        self.assertEqual(self._run("3 ↥ 5‿1"), "[5 ⋄ 3]")

    def test_comparisons(self) -> None:
        self.assertEqual(self._run("3 < 4"), "1")
        self.assertEqual(self._run("3 > 4"), "0")
        self.assertEqual(self._run("4 ≥ 4"), "1")
        self.assertEqual(self._run("1‿2‿3 ≤ 2"), "[1 ⋄ 1 ⋄ 0]")
        self.assertEqual(self._run("'a' < 'b'"), "1")

    def test_character_arithmetic(self) -> None:
        self.assertEqual(self._run("'a' + 1"), "'b'")
        self.assertEqual(self._run("1 + 'a'"), "'b'")
        self.assertEqual(self._run("'c' - 1"), "'b'")
        self.assertEqual(self._run("'c' - 'a'"), "2")
        self.assertEqual(self._run('"abc" + 1'), '"bcd"')

    def test_character_type_errors(self) -> None:
        from fixapl import FixAPLTypeError, interpret

        for source in ("'a' × 2", "1 - 'a'", "'a' + 'b'", "'a' < 1", "'a' + 0.5"):
            with self.subTest(source=source):
                with self.assertRaises(FixAPLTypeError):
                    interpret(source)

    def test_equality_across_kinds(self) -> None:
        self.assertEqual(self._run("'a' = 1"), "0")
        self.assertEqual(self._run("'a' ≠ 1"), "1")
        self.assertEqual(self._run('"ab" = \'a\''), "[1 ⋄ 0]")

    def test_functions_compare_unequal_but_do_not_order(self) -> None:
        from fixapl import FixAPLTypeError, Num
        from fixapl.primitives import add, equal, less, primitive_function

        plus = primitive_function("+")
        self.assertEqual(equal(plus, plus), Num(0.0))
        with self.assertRaises(FixAPLTypeError):
            less(plus, Num(1.0))
        with self.assertRaises(FixAPLTypeError):
            add(plus, Num(1.0))

    def test_dense_kernel_matches_elementwise_path(self) -> None:
        from fixapl import from_python
        from fixapl.primitives import add, divide, each, matches, modulo

        left = from_python([1.5, 2, -3, 0])
        right = from_python([2, 0.5, 4, 0])
        for primitive in (add, divide, modulo):
            with self.subTest(primitive=primitive):
                dense = primitive(left, right)
                elementwise = each(primitive, left, right)
                self.assertEqual(dense.shape, elementwise.shape)
                for a, b in zip(dense.data, elementwise.data):
                    if a.value != a.value:
                        self.assertNotEqual(b.value, b.value)
                    else:
                        self.assertTrue(matches(a, b))


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for primitive tests")
class StructuralPrimitiveTests(unittest.TestCase):
    def _run(self, source: str) -> str:
        from fixapl import run

        return run(source)

    def test_reshape_cycles_and_truncates(self) -> None:
        from fixapl import interpret, to_python

        self.assertEqual(to_python(interpret("5 ⍴ 'a'‿'b'‿'c'")), "abcab")
        self.assertEqual(self._run("2‿3 ⍴ ⍳4"), "[[0 ⋄ 1 ⋄ 2] ⋄ [3 ⋄ 0 ⋄ 1]]")
        self.assertEqual(self._run("2 ⍴ 1‿2‿3"), "[1 ⋄ 2]")
        self.assertEqual(self._run("0 ⍴ 1"), "[]")

    def test_reshape_errors(self) -> None:
        from fixapl import FixAPLShapeError, FixAPLTypeError, interpret

        with self.assertRaises(FixAPLShapeError):
            interpret("3 ⍴ 0 ⍴ 1")
        with self.assertRaises(FixAPLShapeError):
            interpret("¯1 ⍴ 1")
        with self.assertRaises(FixAPLTypeError):
            interpret("1.5 ⍴ 1")

    def test_catenate_promotes_rank(self) -> None:
        self.assertEqual(self._run("1‿2 ⍪ 3"), "[1 ⋄ 2 ⋄ 3]")
        self.assertEqual(self._run("0 ⍪ 1‿2"), "[0 ⋄ 1 ⋄ 2]")
        self.assertEqual(self._run("1 ⍪ 2"), "[1 ⋄ 2]")
        self.assertEqual(self._run("(2‿2 ⍴ ⍳4) ⍪ 8‿9"), "[[0 ⋄ 1] ⋄ [2 ⋄ 3] ⋄ [8 ⋄ 9]]")
        self.assertEqual(self._run("(2‿2 ⍴ ⍳4) ⍪ 7"), "[[0 ⋄ 1] ⋄ [2 ⋄ 3] ⋄ [7 ⋄ 7]]")

    def test_catenate_returns_a_new_array(self) -> None:
        self.assertEqual(self._run("A ← 1‿2 ⋄ B ← A ⍪ 3 ⋄ A"), "[1 ⋄ 2]")

    def test_catenate_errors(self) -> None:
        from fixapl import FixAPLShapeError, FixAPLTypeError, Num, interpret
        from fixapl.primitives import catenate, primitive_function

        with self.assertRaises(FixAPLShapeError):
            interpret("(2‿2‿2 ⍴ 1) ⍪ 1‿2")
        with self.assertRaises(FixAPLShapeError):
            interpret("(2‿2 ⍴ 1) ⍪ 1‿2‿3")
        with self.assertRaises(FixAPLTypeError):
            catenate(Num(1.0), primitive_function("+"))

    def test_length_shape_flat(self) -> None:
        self.assertEqual(self._run("⧻ 1‿2‿3"), "3")
        self.assertEqual(self._run("⧻ 5"), "0")
        self.assertEqual(self._run("△ 2‿3 ⍴ 0"), "[2 ⋄ 3]")
        self.assertEqual(self._run("△ 5"), "[]")
        self.assertEqual(self._run(", 2‿2 ⍴ ⍳4"), "[0 ⋄ 1 ⋄ 2 ⋄ 3]")
        self.assertEqual(self._run(", 5"), "[5]")

    def test_iota(self) -> None:
        from fixapl import FixAPLShapeError, FixAPLTypeError, interpret

        self.assertEqual(self._run("⍳ 4"), "[0 ⋄ 1 ⋄ 2 ⋄ 3]")
        self.assertEqual(self._run("⍳ 2‿2"), "[[0 ⋄ 1] ⋄ [2 ⋄ 3]]")
        self.assertEqual(self._run("⍳ 0"), "[]")
        with self.assertRaises(FixAPLShapeError):
            interpret("⍳ ¯1")
        with self.assertRaises(FixAPLTypeError):
            interpret("⍳ 2.5")
        with self.assertRaises(FixAPLTypeError):
            interpret("⍳ 'a'")

    def test_select(self) -> None:
        self.assertEqual(self._run("1 ⊏ 5‿6‿7"), "6")
        self.assertEqual(self._run("¯1 ⊏ 5‿6‿7"), "7")
        self.assertEqual(self._run("0‿2 ⊏ 5‿6‿7"), "[5 ⋄ 7]")
        self.assertEqual(self._run("1 ⊏ 2‿2 ⍴ ⍳4"), "[2 ⋄ 3]")
        self.assertEqual(self._run("0‿0 ⊏ 2‿2 ⍴ ⍳4"), "[[0 ⋄ 1] ⋄ [0 ⋄ 1]]")

    def test_select_errors(self) -> None:
        from fixapl import FixAPLIndexError, FixAPLShapeError, interpret

        with self.assertRaises(FixAPLIndexError):
            interpret("3 ⊏ 1‿2")
        with self.assertRaises(FixAPLShapeError):
            interpret("0 ⊏ 5")

    def test_pick(self) -> None:
        self.assertEqual(self._run("1‿0 ⊑ 2‿2 ⍴ ⍳4"), "2")
        self.assertEqual(self._run("2 ⊑ 5‿6‿7"), "7")
        self.assertEqual(self._run("⟨0‿1 ⋄ 1‿1⟩ ⊑ 2‿2 ⍴ ⍳4"), "[1 ⋄ 3]")
        self.assertEqual(self._run("[0‿1 ⋄ 1‿0] ⊑ 2‿2 ⍴ ⍳4"), "[1 ⋄ 2]")

    def test_pick_errors(self) -> None:
        from fixapl import FixAPLIndexError, FixAPLShapeError, interpret

        with self.assertRaises(FixAPLShapeError):
            interpret("0 ⊑ 2‿2 ⍴ 1")
        with self.assertRaises(FixAPLIndexError):
            interpret("5 ⊑ 1‿2")

    def test_pair_left_right_identity(self) -> None:
        self.assertEqual(self._run("1 ⍮ 2‿3"), "[1 ⋄ [2 ⋄ 3]]")
        self.assertEqual(self._run("1 ⊣ 2"), "1")
        self.assertEqual(self._run("1 ⊢ 2"), "2")
        self.assertEqual(self._run("⋅ 4"), "4")

    def test_match_and_nomatch(self) -> None:
        self.assertEqual(self._run("1‿2 ≡ 1‿2"), "1")
        self.assertEqual(self._run("1‿2 ≡ 1‿3"), "0")
        self.assertEqual(self._run("'a' ≡ 97"), "0")
        self.assertEqual(self._run("1‿2 ≢ 2"), "1")
        self.assertEqual(self._run("⟨1 ⋄ \"ab\"⟩ ≡ ⟨1 ⋄ \"ab\"⟩"), "1")

    def test_array_literals(self) -> None:
        from fixapl import FixAPLShapeError, FixAPLTypeError, interpret

        self.assertEqual(self._run("[1‿2 ⋄ 3‿4]"), "[[1 ⋄ 2] ⋄ [3 ⋄ 4]]")
        self.assertEqual(self._run("△ [1‿2 ⋄ 3‿4]"), "[2 ⋄ 2]")
        self.assertEqual(self._run("⟨1 ⋄ 2‿3⟩"), "[1 ⋄ [2 ⋄ 3]]")
        with self.assertRaises(FixAPLShapeError):
            interpret("[1 ⋄ 2‿3]")
        with self.assertRaises(FixAPLShapeError):
            interpret("[1‿2 ⋄ 3‿4‿5]")
        with self.assertRaises(FixAPLTypeError):
            interpret("[+ ⋄ 1]")


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for primitive tests")
class ModifierTests(unittest.TestCase):
    def _run(self, source: str) -> str:
        from fixapl import run

        return run(source)

    def test_reduce_is_a_right_fold(self) -> None:
        self.assertEqual(self._run("+/ 1‿2‿3"), "6")
        self.assertEqual(self._run("-/ 1‿2‿3"), "2")
        self.assertEqual(self._run("+/ 2‿3 ⍴ ⍳6"), "[3 ⋄ 5 ⋄ 7]")
        self.assertEqual(self._run("+/ , 5"), "5")

    def test_reduce_requires_dyadic_operand(self) -> None:
        from fixapl import FixAPLTrainError, interpret

        with self.assertRaisesRegex(FixAPLTrainError, "dyadic"):
            interpret("⌊/ 1‿2")
        with self.assertRaisesRegex(FixAPLTrainError, "dyadic"):
            interpret("⌊\\ 1‿2")

    def test_reduce_rejects_empty_and_scalar_arguments(self) -> None:
        from fixapl import FixAPLShapeError, FixAPLTypeError, interpret

        with self.assertRaises(FixAPLShapeError):
            interpret("+/ 0 ⍴ 1")
        with self.assertRaises(FixAPLTypeError):
            interpret("+/ 5")

    def test_scan(self) -> None:
        self.assertEqual(self._run("+\\ 1‿2‿3"), "[1 ⋄ 3 ⋄ 6]")
        self.assertEqual(self._run("-\\ 1‿2‿3"), "[1 ⋄ ¯1 ⋄ 2]")
        self.assertEqual(self._run("+\\ 2‿2 ⍴ ⍳4"), "[[0 ⋄ 1] ⋄ [2 ⋄ 4]]")
        self.assertEqual(self._run("⍪\\ ⟨1‿2 ⋄ 3⟩"), "[[1 ⋄ 2] ⋄ [1 ⋄ 2 ⋄ 3]]")

    def test_each(self) -> None:
        from fixapl import FixAPLShapeError, interpret

        self.assertEqual(self._run("⍳¨ 1‿2"), "[[0] ⋄ [0 ⋄ 1]]")
        self.assertEqual(self._run("1‿2 ⍮¨ 3‿4"), "[[1 ⋄ 3] ⋄ [2 ⋄ 4]]")
        self.assertEqual(self._run("⧻¨ ⟨1‿2 ⋄ \"abc\"⟩"), "[2 ⋄ 3]")
        with self.assertRaises(FixAPLShapeError):
            interpret("1‿2 +¨ 1‿2‿3")

    def test_backwards_and_self(self) -> None:
        self.assertEqual(self._run("2 -˜ 10"), "8")
        self.assertEqual(self._run("×˙ 4"), "16")
        self.assertEqual(self._run("⌊˜ 2.5"), "2")
        self.assertEqual(self._run("⌊˙ 2.5"), "2")

    def test_modifier_operands_must_be_functions(self) -> None:
        from fixapl import FixAPLTrainError, interpret

        for source in ("1¨", "1˜", "1˙", "1/", "1○2"):
            with self.subTest(source=source):
                with self.assertRaises(FixAPLTrainError):
                    interpret(source)

    def test_compose_functions(self) -> None:
        self.assertEqual(self._run("7 ⌊∘÷ 2"), "3")
        self.assertEqual(self._run("⌈∘⌊ 2.5"), "2")
        self.assertEqual(self._run("(+∘⌊) 2.5"), "4.5")

    def test_compose_sections(self) -> None:
        self.assertEqual(self._run("(+∘1) 5"), "6")
        self.assertEqual(self._run("(10∘-) 3"), "7")
        self.assertEqual(self._run("⌊∘2.5"), "2")

    def test_compose_two_values_fails(self) -> None:
        from fixapl import FixAPLTrainError, interpret

        with self.assertRaises(FixAPLTrainError):
            interpret("1∘2")

    def test_over(self) -> None:
        self.assertEqual(self._run("3 ↥○¯ 5"), "¯3")
        self.assertEqual(self._run("⌊○⌈ 2.5"), "3")
        self.assertEqual(self._run("7 ⌊○÷ 2"), "3")
        self.assertEqual(self._run("6 +○× 2"), "14")

    def test_arity_is_checked_on_call(self) -> None:
        from fixapl import FixAPLTypeError, Num
        from fixapl.primitives import primitive_function

        with self.assertRaises(FixAPLTypeError):
            primitive_function("+")(Num(1.0))
