"""Service layer: access policy, resource resolution, writers and the mutation orchestrator."""
