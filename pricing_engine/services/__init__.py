# Services layer for pricing business logic
