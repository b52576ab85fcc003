import logging
import unittest
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

from clinic_agent.config.logging_config import configure_logging


class TestLoggingConfig(unittest.TestCase):
    def test_configure_logging(self):
        # Test that the function returns a logger
        logger = configure_logging()
        self.assertIsInstance(logger, logging.Logger)

        # Test that the logger has the correct name
        self.assertEqual(logger.name, "clinic_voice_agent")

        # Test that the logger has the correct level
        self.assertEqual(logger.level, logging.INFO)
        self.assertFalse(logger.propagate)

        # Test that the logger has the correct handlers and format
        self.assertGreaterEqual(len(logger.handlers), 1)  # At least one handler (console)
        handler = logger.handlers[0]  # Check first handler (should be console handler)
        self.assertIsInstance(handler, logging.StreamHandler)
        formatter = handler.formatter
        self.assertEqual(formatter._fmt, "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def test_level_from_environment(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "debug"}):
            logger = configure_logging()
        self.assertEqual(logger.level, logging.DEBUG)

    def test_reconfiguring_does_not_stack_handlers(self):
        configure_logging()
        logger = configure_logging()
        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        self.assertLessEqual(len(file_handlers), 1)
        self.assertLessEqual(len(logger.handlers), 2)

    def test_noisy_loggers_quietened(self):
        configure_logging("DEBUG")
        self.assertEqual(logging.getLogger("httpx").level, logging.WARNING)
        self.assertEqual(logging.getLogger("websockets").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
