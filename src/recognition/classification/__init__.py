"""Consumer-side classification of family names into roles.

Provides the shared rule cache and the first-match classifier built on it.
"""

from recognition.classification.cache import CompiledRule, RuleCache, RuleSnapshot
from recognition.classification.classifier import RoleClassifier

__all__ = ["CompiledRule", "RoleClassifier", "RuleCache", "RuleSnapshot"]
