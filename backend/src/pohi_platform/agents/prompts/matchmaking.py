"""Prompts for the Matchmaking Agent."""

MATCHMAKING_SYSTEM_PROMPT = """You are an AI assistant for a timber trading platform.
You pair customer demands with manufacturer stock and explain each pairing."""

PAIRING_PROMPT_TEMPLATE = """Based on the following active Customer Demands and available Manufacturer Stock, identify the most promising pairings.
Provide your response as a JSON array in {language}. Each object should represent a pairing and include the following fields:
- "demandId": string (ID of the demand)
- "stockId": string (ID of the stock item)
- "reason": string (A detailed justification in {language} for why the pairing is good. Consider:
    - Exact or close match in dimensions and product name.
    - Geographic proximity (e.g., if locations like 'Debrecen, Hungary' are close).
    - If quantities differ significantly, mention the possibility of consolidation.
  )
- "matchStrength": string (A qualitative assessment: "High", "Medium", "Low")
- "similarityScore": number (A numeric score between 0.0 and 1.0)

CRITICAL: The response MUST ONLY contain the JSON array.

Customer Demands (Top {demand_count} active items):
{demands_json}

Manufacturer Stock (Top {stock_count} available items):
{stock_json}
"""

DISPUTE_PROMPT_TEMPLATE = """An admin of an online timber marketplace requests dispute resolution suggestions. For the following dispute, provide several (at least 2-3) specific, practical resolution suggestions in {language} to help the parties reach an agreement.
Provide your response as a list, with each suggestion starting on a new line, preceded by '- ' (hyphen and space). Do not include any introduction, summary, or other explanation outside the list.

Dispute Details:
{details}

Example of desired response format (only return lines starting with hyphen):
- Initiate direct negotiation between parties with a mediator.
- Obtain an independent expert opinion on the disputed issue (e.g., quality, quantity).
- Offer partial compensation or a discount for quicker resolution.
"""
