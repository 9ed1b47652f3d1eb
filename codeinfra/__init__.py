"""Developer tooling for the component library monorepo: changelogs and link checks."""

__version__ = "0.1.0"
