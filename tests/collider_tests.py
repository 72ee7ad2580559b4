import unittest
from unittest import mock
from collider import MD5Collider
from md5 import MD5


def engine_digest(padded, num_rounds=4):
    return int.from_bytes(MD5().compress(padded, num_rounds).digest(), 'big')


class TestMD5ColliderGates(unittest.TestCase):
    def setUp(self):
        self.collider = MD5Collider(MD5.md5_padded(b"Hello, World!"))

    def tearDown(self):
        self.collider.close()

    def check_truth_table(self, gate, expected):
        a, b, c = (self.collider.new_var() for _ in range(3))
        gate(a, b, c)
        for a_val in (False, True):
            for b_val in (False, True):
                for c_val in (False, True):
                    assumps = [a if a_val else -a, b if b_val else -b, c if c_val else -c]
                    sat = self.collider.solver.solve(assumptions=assumps)
                    self.assertEqual(sat, expected(a_val, b_val) == c_val)

    def test_and_truth_table(self):
        self.check_truth_table(self.collider.and_bit, lambda x, y: x and y)

    def test_or_truth_table(self):
        self.check_truth_table(self.collider.or_bit, lambda x, y: x or y)

    def test_xor_truth_table(self):
        self.check_truth_table(self.collider.xor_bit, lambda x, y: x != y)

    def test_not_is_sign_flip(self):
        word = self.collider.constant(0b1010, 4)
        self.assertTrue(self.collider.solver.solve())
        model = self.collider.solver.get_model()
        self.assertEqual(MD5Collider.word_value(model, MD5Collider.not_(word)), 0b0101)

    def test_constant_is_lsb_first(self):
        word = self.collider.new_word(4)
        self.collider.fix(word, 0b0110)
        self.assertTrue(self.collider.solver.solve())
        model = self.collider.solver.get_model()
        self.assertEqual([model[v - 1] > 0 for v in word], [False, True, True, False])
        self.assertEqual(MD5Collider.word_value(model, word), 0b0110)

    def test_sum_wraps(self):
        total = self.collider.add(self.collider.constant(0b1110, 4), self.collider.constant(0b1101, 4))
        self.assertTrue(self.collider.solver.solve())
        self.assertEqual(MD5Collider.word_value(self.collider.solver.get_model(), total), 0b1011)

    def test_sum_32_bit(self):
        total = self.collider.add(self.collider.constant(0xffffffff), self.collider.constant(0x00000002))
        self.assertTrue(self.collider.solver.solve())
        self.assertEqual(MD5Collider.word_value(self.collider.solver.get_model(), total), 1)

    def test_rotate_left(self):
        rotated = MD5Collider.rotl(self.collider.constant(0b1101, 4), 2)
        self.assertTrue(self.collider.solver.solve())
        self.assertEqual(MD5Collider.word_value(self.collider.solver.get_model(), rotated), 0b0111)

    def test_rotate_matches_engine(self):
        rotated = MD5Collider.rotl(self.collider.constant(0x80000001), 7)
        self.assertTrue(self.collider.solver.solve())
        self.assertEqual(MD5Collider.word_value(self.collider.solver.get_model(), rotated),
                         MD5.ROT(0x80000001, 7))


class TestMD5ColliderSolve(unittest.TestCase):
    def test_solve_md5_chunk(self):
        string = MD5.md5_padded(b"Hello, World!")
        collider = MD5Collider(string)
        sat, (x, digest) = collider.solve_md5()
        collider.close()
        self.assertTrue(sat)
        self.assertEqual(x, string)
        self.assertEqual(digest, engine_digest(string))
        self.assertEqual(digest, MD5().md5_digest(b"Hello, World!"))

    def test_solve_multi_block(self):
        string = MD5.md5_padded(b"1234567890" * 8)
        self.assertEqual(len(string), 128)
        collider = MD5Collider(string)
        sat, (x, digest) = collider.solve_md5()
        collider.close()
        self.assertTrue(sat)
        self.assertEqual(format(digest, '032x'), "57edf4a22be3c955ac49da2e2107b67a")

    def test_reduced_rounds_match_engine(self):
        string = MD5.md5_padded(b"abc")
        for rounds in (1, 2, 3):
            with self.subTest(rounds=rounds):
                collider = MD5Collider(string)
                sat, (_, digest) = collider.solve_md5(num_rounds=rounds)
                collider.close()
                self.assertTrue(sat)
                self.assertEqual(digest, engine_digest(string, rounds))

    def test_excluded_bit_is_flipped(self):
        string = MD5.md5_padded(b"abc")
        collider = MD5Collider(string, exclude_input_bits=[3])
        sat, (x, digest) = collider.solve_md5(num_rounds=1)
        collider.close()
        self.assertTrue(sat)
        self.assertEqual(x[0], string[0] ^ 0x10)
        self.assertEqual(x[1:], string[1:])
        self.assertEqual(digest, engine_digest(x, 1))

    def test_wrong_target_is_unsat(self):
        string = MD5.md5_padded(b"abc")
        collider = MD5Collider(string, target_digest=engine_digest(string, 1) ^ 1)
        sat, result = collider.solve_md5(num_rounds=1)
        collider.close()
        self.assertFalse(sat)
        self.assertIsNone(result)

    def test_solve_with_timeout(self):
        string = MD5.md5_padded(b"abc")
        collider = MD5Collider(string)
        sat, (x, digest) = collider.solve_md5(num_rounds=1, timeout=30)
        collider.close()
        self.assertTrue(sat)
        self.assertEqual(x, string)
        self.assertEqual(digest, engine_digest(string, 1))

    def test_interrupted_solve_returns_no_solution(self):
        collider = MD5Collider(MD5.md5_padded(b"abc"))
        with mock.patch.object(collider.solver, "solve_limited", return_value=None) as limited:
            sat, result = collider.solve_md5(num_rounds=1, timeout=30)
        collider.close()
        limited.assert_called_once_with(expect_interrupt=True)
        self.assertFalse(sat)
        self.assertIsNone(result)

    def test_matching_target_is_sat(self):
        string = MD5.md5_padded(b"abc")
        target = engine_digest(string, 1)
        collider = MD5Collider(string, target_digest=target)
        sat, (_, digest) = collider.solve_md5(num_rounds=1)
        collider.close()
        self.assertTrue(sat)
        self.assertEqual(digest, target)


if __name__ == "__main__":
    unittest.main(verbosity=1)
