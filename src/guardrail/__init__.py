"""guardrail: policy-gated validation of agent-written code changes."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("llm-guardrail")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
