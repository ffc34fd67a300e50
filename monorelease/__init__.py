"""Change-file driven publishing for uv workspaces."""
