#!/usr/bin/env python3
"""
Unit Tests for the Error Classifier
"""

import unittest

from pydantic import ValidationError

from parkspot_client.application.dtos import ReserveRequestDTO
from parkspot_client.application.error_classifier import ErrorClassifier
from parkspot_client.domain.errors import (
    ApiError, BookingValidationError, ErrorKind, NormalizationError,
    TransportError, TransportErrorKind,
)


def http_error(status, body=None):
    return TransportError(TransportErrorKind.HTTP, status=status, body=body)


class TestErrorClassifier(unittest.TestCase):
    """Test mapping of failures to kinds and messages"""

    def setUp(self):
        self.classifier = ErrorClassifier()

    def test_status_table(self):
        expected = {
            400: (ErrorKind.VALIDATION, "Invalid request"),
            401: (ErrorKind.UNAUTHORIZED, "Unauthorized. Please login again"),
            403: (ErrorKind.FORBIDDEN, "Access forbidden"),
            404: (ErrorKind.NOT_FOUND, "Resource not found"),
            422: (ErrorKind.VALIDATION, "Invalid request"),
            500: (ErrorKind.SERVER, "Server error. Please try again later"),
            409: (ErrorKind.VALIDATION, "Invalid request"),
            503: (ErrorKind.SERVER, "Server error"),
        }
        for status, (kind, message) in expected.items():
            result = self.classifier.classify(http_error(status))
            self.assertEqual((result.kind, result.message, result.status), (kind, message, status))

    def test_backend_message_wins(self):
        """Test the server's message field is used verbatim"""
        result = self.classifier.classify(http_error(422, {"message": "Slot already reserved"}))
        self.assertEqual(result.message, "Slot already reserved")
        self.assertEqual(result.kind, ErrorKind.VALIDATION)

        result = self.classifier.classify(http_error(500, {"error": "DB down", "message": "  "}))
        self.assertEqual(result.message, "DB down")

        result = self.classifier.classify(http_error(400, {"message": " Plate taken.\n"}))
        self.assertEqual(result.message, " Plate taken.\n")

    def test_timeout_and_network(self):
        timeout = self.classifier.classify(TransportError(TransportErrorKind.TIMEOUT))
        self.assertEqual((timeout.kind, timeout.message), (ErrorKind.TIMEOUT, "Request timeout. Please try again"))
        network = self.classifier.classify(TransportError(TransportErrorKind.NETWORK))
        self.assertEqual((network.kind, network.message), (ErrorKind.NETWORK, "Network error. Check your connection"))

    def test_domain_errors(self):
        normalization = self.classifier.classify(NormalizationError("booking", "missing id"))
        self.assertEqual(normalization.kind, ErrorKind.NORMALIZATION)
        self.assertEqual(normalization.message, "Invalid booking data: missing id")

        validation = self.classifier.classify(BookingValidationError("duration", "Too short"))
        self.assertEqual((validation.kind, validation.message), (ErrorKind.VALIDATION, "Too short"))

    def test_pydantic_validation_error(self):
        with self.assertRaises(ValidationError) as ctx:
            ReserveRequestDTO(duration_hours=2, vehicle_plate="AB")
        result = self.classifier.classify(ctx.exception)
        self.assertEqual(result.kind, ErrorKind.VALIDATION)
        self.assertTrue(result.message.startswith(("vehicle_plate", "vehiclePlate")))
        self.assertIn("at least 3 characters", result.message)
        self.assertNotIn("Value error", result.message)

    def test_unknown_and_passthrough(self):
        self.assertEqual(self.classifier.classify(RuntimeError("boom")).kind, ErrorKind.UNKNOWN)
        self.assertEqual(self.classifier.classify(RuntimeError()).message, "An unexpected error occurred")
        original = ApiError(ErrorKind.FORBIDDEN, "No")
        self.assertIs(self.classifier.to_api_error(original), original)

    def test_classification_is_pure(self):
        """Test identical inputs classify identically"""
        error = http_error(404, {"message": "Booking not found"})
        self.assertEqual(self.classifier.classify(error), self.classifier.classify(error))

    def test_to_api_error(self):
        api_error = self.classifier.to_api_error(http_error(403))
        self.assertIsInstance(api_error, ApiError)
        self.assertEqual(api_error.kind, ErrorKind.FORBIDDEN)
        self.assertEqual(api_error.status, 403)
        self.assertEqual(str(api_error), "Access forbidden")


if __name__ == "__main__":
    unittest.main()
