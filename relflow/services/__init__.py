"""External collaborators: manifests, changelog generator, GitHub publisher."""
