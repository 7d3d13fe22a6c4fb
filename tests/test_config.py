import unittest

from tradebook.config import Config


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        config = Config.from_env({})
        self.assertEqual(config.TJ_STORE, "sqlite")
        self.assertEqual(config.TJ_DEFAULT_OWNER, "local")
        self.assertEqual(config.TJ_PIP_VALUE, 1.0)
        config.validate()

    def test_env_values_are_normalised(self):
        config = Config.from_env({
            "TJ_STORE": " SQLite ",
            "TJ_CURRENCY": "idr",
            "TJ_PIP_VALUE": "15000",
            "LOG_LEVEL": "debug",
        })
        self.assertEqual(config.TJ_STORE, "sqlite")
        self.assertEqual(config.TJ_CURRENCY, "IDR")
        self.assertEqual(config.TJ_PIP_VALUE, 15000.0)
        self.assertEqual(config.LOG_LEVEL, "DEBUG")

    def test_override_ignores_unknown_keys(self):
        config = Config.from_env({}).override({"TJ_DB": "x.db", "NOPE": 1})
        self.assertEqual(config.TJ_DB, "x.db")
        self.assertFalse(hasattr(config, "NOPE"))

    def test_validate(self):
        with self.assertRaises(ValueError):
            Config(TJ_STORE="postgres").validate()
        with self.assertRaises(ValueError):
            Config(TJ_STORE="supabase", SUPABASE_URL="https://x.supabase.co").validate()
        with self.assertRaises(ValueError):
            Config(TJ_PIP_VALUE=0).validate()
        Config(TJ_STORE="supabase", SUPABASE_URL="https://x", SUPABASE_KEY="k").validate()


if __name__ == "__main__":
    unittest.main()
