"""Command builders and runners for the .NET Gallio, coverage and StyleCop tools."""

__version__ = "1.0.0"
