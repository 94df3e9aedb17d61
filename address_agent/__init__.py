"""
Address Verification Agent

Researches a person from a LinkedIn URL or name and recommends where to
deliver a physical package:
- Tool-use loop over Bedrock (Claude) or OpenAI models
- People search, web search, property and distance lookups
- Confidence-gated decisions with an ordered event stream
"""

__version__ = "1.0.0"
