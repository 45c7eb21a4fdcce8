"""Release pipeline: version resolution, stages, rollback and verification."""
