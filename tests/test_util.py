import unittest

from orbit.errors import ConfigurationError
from orbit.util import U8_MAX, canonical_params, ensure_int, network_address, parse_byte_array


class ParamParsingTests(unittest.TestCase):
    def test_ensure_int_accepts_plain_forms(self) -> None:
        self.assertEqual(ensure_int(12, "amount"), 12)
        self.assertEqual(ensure_int("1000", "amount"), 1000)
        self.assertEqual(ensure_int(" 42 ", "amount"), 42)
        self.assertEqual(ensure_int("0xff", "amount"), 255)
        self.assertEqual(ensure_int("0XFF", "amount"), 255)

    def test_ensure_int_rejects_loose_forms(self) -> None:
        for value in ("1_000", "+5", "-5", "1.0", "", "0x", "0x_ff", "1e3", True, 1.5, None):
            with self.subTest(value=value):
                with self.assertRaises(ConfigurationError):
                    ensure_int(value, "amount")

    def test_ensure_int_range(self) -> None:
        self.assertEqual(ensure_int(U8_MAX, "threshold", U8_MAX), U8_MAX)
        with self.assertRaises(ConfigurationError):
            ensure_int(U8_MAX + 1, "threshold", U8_MAX)

    def test_network_address(self) -> None:
        self.assertEqual(network_address("0x2.icon/hx01"), ("0x2.icon", "hx01"))
        for value in (" 0x2.icon/hx01", "0x2.icon/hx01 ", "0x2.icon", "/hx01", "0x2.icon/", 5):
            with self.subTest(value=value):
                with self.assertRaises(ConfigurationError):
                    network_address(value)

    def test_parse_byte_array(self) -> None:
        self.assertEqual(parse_byte_array([1, 255], "action"), b"\x01\xff")
        self.assertEqual(parse_byte_array("0x01ff", "action"), b"\x01\xff")
        with self.assertRaises(ConfigurationError):
            parse_byte_array([256], "action")

    def test_canonical_params(self) -> None:
        params = {"feeHandler": "abc", "dstChainId": 2, "to": "x"}
        self.assertEqual(canonical_params(params), {"fee_handler": "abc", "dst_chain_id": 2, "to": "x"})
        self.assertEqual(params["feeHandler"], "abc")
        with self.assertRaises(ConfigurationError):
            canonical_params({"dstAddress": "0x01", "dst_address": "0x02"})


if __name__ == "__main__":
    unittest.main()
