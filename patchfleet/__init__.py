"""patchfleet: apply one unified diff across many GitHub repositories.

For every selected repository a branch is found or created, the diff's file
changes are committed through the GitHub contents API, and a pull request is
opened against the default branch.

CLI entrypoint lives in `patchfleet.cli`.
"""

__version__ = "0.1.0"
