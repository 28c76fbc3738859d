"""Prompts for the Logistics Agent."""

LOADING_PLAN_PROMPT_TEMPLATE = """You are a logistics planner for "Pohi AI Pro". Create an optimal loading and transport plan for a {capacity_m3:g}m³ (approx. 24-ton, 13.5m flatbed) truck in {language}.
The transport involves consolidating items for multiple Customers, picked up from multiple Manufacturers.
Products are timber, transported in "crates" or bundles.

Pickup locations and items:
{pickups_json}

Drop-off locations and items:
{dropoffs_json}

The response MUST be a valid JSON object in {language} with fields:
- "planDetails": A string summary of the plan.
- "items": A JSON array of LoadingPlanItem objects. Each must include: "name", "volumeM3", "destinationName", "dropOffOrder", "loadingSuggestion", "quality", "notesOnItem", "demandId", "stockId", "companyId".
  "dropOffOrder" is 1 for the first customer visited; items for later customers get higher numbers.
- "capacityUsed": A string percentage.
- "waypoints": A JSON array of Waypoint objects. Each must include: "name", "type" (string: "pickup" or "dropoff"), and "order" (number).
- "optimizedRouteDescription": A string describing the route.

CRITICAL: The response must ONLY contain the JSON object. Do not include any other text, explanations, or markdown formatting. The JSON must be perfectly valid.
"""

FREIGHT_TIPS_PROMPT_TEMPLATE = """An admin of a timber company requests freight optimization tips. Provide at least 3-5 specific, practical tips in {language} for optimizing timber transport. The tips should be in a list, each tip on a new line, prefixed with '- ' (hyphen and space). The response should contain nothing else."""

WAYBILL_PROMPT_TEMPLATE = """Provide a list of 3-5 key checkpoints in {language} for an admin to verify on a timber transport waybill before dispatch. Each point should start with '- '. The response should only contain this list."""

COST_ESTIMATE_PROMPT_TEMPLATE = """An admin of a timber company requests a logistics cost estimation for an approx. {distance_km} km domestic transport within {country}, for a full truckload ({tonnage} tons) of {cargo}.
Provide an estimation in JSON format, in {language}, in EUR, with the following fields: "totalCost" (the total estimated cost, e.g., "450-550 EUR"), "factors" (an array of main cost factors, e.g., ["Fuel price", "Road tolls", "Driver's wages", "Loading time", "Administrative costs"]).
Important: The response should only contain the JSON object, without any extra text or markdown."""

SHIPPING_EMAIL_PROMPT_TEMPLATE = """Based on the provided consolidated timber loading plan (ID: {plan_id}), generate a polite and professional email draft in {language}.
This email is from "Pohi AI Pro Logistics" to the involved customers ({customer_names}) notifying them that their order (part of this consolidated truckload) is scheduled for shipment.
Include placeholders like [Estimated Delivery Window].
The email should be reassuring about the consolidated nature of the transport if relevant.
Plan details for context: {plan_details}. Route: {route}.
The response should only contain the email draft text."""
