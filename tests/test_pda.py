import unittest
from unittest.mock import patch

from solders.pubkey import Pubkey

from fakes import key
from orbit.errors import ConfigurationError, DerivationExhausted
from orbit.pda import (
    IntSeed,
    be_bytes,
    derive,
    find_program_address,
    from_be_bytes,
    parse_seed_spec,
    seed_bytes,
    u64_seed,
    u128_seed,
)

PROGRAM = key(9)


class AddressDeriverTests(unittest.TestCase):
    def test_derivation_is_deterministic(self) -> None:
        seeds = ["rollback", u128_seed(42), key(3)]
        first = find_program_address(seeds, PROGRAM)
        for _ in range(3):
            self.assertEqual(find_program_address(seeds, PROGRAM), first)

    def test_matches_reference_bump_search(self) -> None:
        for seeds in (["state"], ["fee", "0x2.icon"], ["vault", key(5)]):
            expected = Pubkey.find_program_address([seed_bytes(s) for s in seeds], PROGRAM)
            self.assertEqual(find_program_address(seeds, PROGRAM), expected)

    def test_derived_address_is_off_curve(self) -> None:
        address, bump = find_program_address(["config"], PROGRAM)
        self.assertFalse(address.is_on_curve())
        self.assertTrue(0 <= bump <= 255)

    def test_string_and_bytes_seeds_are_equivalent(self) -> None:
        self.assertEqual(derive(PROGRAM, "state"), derive(PROGRAM, b"state"))

    def test_u64_seed_round_trip(self) -> None:
        for value in (0, 1, 2, 0x0102_0304_0506_0708, 2**64 - 1):
            raw = u64_seed(value).encode()
            self.assertEqual(len(raw), 8)
            self.assertEqual(int.from_bytes(raw, "big"), value)
            self.assertEqual(from_be_bytes(raw, 8), value)

    def test_u128_seed_round_trip(self) -> None:
        for value in (0, 42, 2**64, 2**128 - 1):
            raw = u128_seed(value).encode()
            self.assertEqual(len(raw), 16)
            self.assertEqual(int.from_bytes(raw, "big"), value)
            self.assertEqual(from_be_bytes(raw, 16), value)

    def test_seed_width_changes_address(self) -> None:
        narrow = derive(PROGRAM, "receipt", u64_seed(7))
        wide = derive(PROGRAM, "receipt", u128_seed(7))
        self.assertNotEqual(narrow, wide)

    def test_u128_seed_is_big_endian(self) -> None:
        self.assertEqual(u128_seed(1).encode(), bytes(15) + b"\x01")

    def test_out_of_range_seed_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            be_bytes(2**64, 8)
        with self.assertRaises(ConfigurationError):
            be_bytes(-1, 16)
        with self.assertRaises(ValueError):
            IntSeed(1, 4).encode()

    def test_long_seed_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            derive(PROGRAM, "x" * 33)

    def test_exhausted_bump_search(self) -> None:
        tried = []

        class OnCurve:
            @staticmethod
            def create_program_address(seeds, program_id):
                tried.append(seeds[-1][0])
                raise ValueError("on curve")

        with patch("orbit.pda.Pubkey", OnCurve):
            with self.assertRaises(DerivationExhausted):
                find_program_address(["state"], PROGRAM)
        self.assertEqual(tried, list(range(255, 0, -1)))

    def test_parse_seed_spec(self) -> None:
        self.assertEqual(parse_seed_spec("string:state"), "state")
        self.assertEqual(parse_seed_spec("hex:0x0a0b"), b"\x0a\x0b")
        self.assertEqual(parse_seed_spec("u8:7"), b"\x07")
        self.assertEqual(parse_seed_spec("u64be:5"), u64_seed(5))
        self.assertEqual(parse_seed_spec("u128be:0x10"), u128_seed(16))
        self.assertEqual(parse_seed_spec(f"pubkey:{key(4)}"), key(4))

    def test_parse_seed_spec_rejects_bad_input(self) -> None:
        for spec in ("state", "u8:256", "u64be:abc", "float:1.0", "pubkey:nope"):
            with self.assertRaises(ConfigurationError):
                parse_seed_spec(spec)


if __name__ == "__main__":
    unittest.main()
