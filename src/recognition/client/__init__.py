"""HTTP access to the recognition rules API."""

from recognition.client.http import RecognitionRuleClient

__all__ = ["RecognitionRuleClient"]
