"""
Governor Package

Core imports are lazily loaded so that importing a submodule does not pull
in the whole engine. For direct module access, import from submodules:

    from governor.governance import Governor, ProposalSpec
    from governor.clock import ManualClock
    from governor.exceptions import NotExecutable
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'Governor':
        from .governance import Governor
        return Governor
    elif name == 'ProposalSpec':
        from .governance import ProposalSpec
        return ProposalSpec
    elif name == 'GovernorError':
        from .exceptions import GovernorError
        return GovernorError
    raise AttributeError(f"module 'governor' has no attribute {name!r}")

__all__ = ['Governor', 'ProposalSpec', 'GovernorError']
