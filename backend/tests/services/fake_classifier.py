"""Fake Relationship Classifier — scripted AI verdicts keyed by candidate id."""

import asyncio

from familygraph.core.ai_results import RelationshipDetection


class FakeClassifier:
    def __init__(self, results=None, default=None, error=None, delay=0.0):
        self.results = results or {}
        self.default = default
        self.error = error
        self.delay = delay
        self.calls = []

    async def classify_relationship(self, source, target, options=None):
        self.calls.append((source.id, target.id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.results.get(target.id, self.default)


def detection(relationship_type, confidence, rationale="model verdict"):
    return RelationshipDetection(relationship_type, confidence, rationale)
