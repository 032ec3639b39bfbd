"""
Email Classification Prompt Template

This prompt extracts intent, constraints, action items, sender details and
a company category from a single job-search email, using the user's
profile to judge relevance.
"""

from typing import List

from inboxzero.models import Email, UserPreferences

# Only the strongest keywords are worth the prompt tokens
MAX_PROMPT_KEYWORDS = 5


def build_profile_context(preferences: UserPreferences) -> str:
    """
    Summarize the user's profile for the classifier.

    Returns:
        str: "User Profile:" block, or an empty string when the profile is empty
    """
    parts: List[str] = []
    if preferences.skills:
        parts.append(f"Skills: {', '.join(preferences.skills)}")
    if preferences.past_roles:
        parts.append(f"Past roles: {', '.join(preferences.past_roles)}")
    if preferences.desired_roles:
        parts.append(f"Seeking roles: {', '.join(preferences.desired_roles)}")
    if preferences.high_priority_roles:
        parts.append(f"High priority roles: {', '.join(preferences.high_priority_roles)}")
    if preferences.high_priority_keywords:
        keywords = preferences.high_priority_keywords[:MAX_PROMPT_KEYWORDS]
        parts.append(f"High priority keywords: {', '.join(keywords)}")
    if preferences.high_priority_company_types:
        parts.append(f"High priority companies: {preferences.high_priority_company_types}")
    if preferences.medium_priority_company_types:
        parts.append(f"Medium priority companies: {preferences.medium_priority_company_types}")
    if preferences.low_priority_company_types:
        parts.append(f"Low priority companies: {preferences.low_priority_company_types}")

    if not parts:
        return ""
    return "User Profile:\n" + "\n".join(parts)


def build_classify_email_prompt(
    email: Email, preferences: UserPreferences, max_body_chars: int = 2000
) -> str:
    """
    Build the prompt for email classification.

    Args:
        email: The email to classify
        preferences: User profile used for company categorization
        max_body_chars: Body characters included before truncation

    Returns:
        str: Formatted prompt string
    """
    body = email.body[:max_body_chars]
    if len(email.body) > max_body_chars:
        body += "\n[...truncated...]"

    context = build_profile_context(preferences)
    context_block = f"\n\n{context}" if context else ""
    platform = "linkedin" if email.is_linkedin_notification else "email"

    return f"""You are an AI assistant that analyzes job search emails and extracts structured information.

Email to analyze:
From: {email.sender_name} <{email.sender}>
Subject: {email.subject}
Body: {body}
LinkedIn Notification: {"Yes" if email.is_linkedin_notification else "No"}
LinkedIn Profile URL: {email.linkedin_profile_url or "Not found"}{context_block}

Your task is to extract:
1. Intent: One of: schedule_call, send_resume, deadline, technical_assessment, multi_step_process, linkedin_followup, other
2. Specific constraints: dates, times, deadlines, duration, time constraints (e.g., "Friday afternoon", "next week")
3. Required actions: What the user needs to do (e.g., "send resume", "complete assessment", "schedule call")
4. Sender information: Name, company, LinkedIn profile URL if present
5. Company name and category (high/medium/low/unknown based on the user's company preferences)

Intent definitions:
- schedule_call: Email requests scheduling a call/meeting
- send_resume: Email requests resume/CV
- deadline: Email has a specific deadline
- technical_assessment: Email mentions technical test/assessment
- multi_step_process: Email describes a multi-step interview/hiring process
- linkedin_followup: Email is from LinkedIn and needs follow-up
- other: Doesn't fit above categories

Extract dates in ISO format (YYYY-MM-DD) when possible. For relative dates like "next Friday", calculate the actual date.
Extract times in 24-hour format when mentioned.
Extract duration (e.g., "30min", "1 hour", "45 minutes").

Return ONLY valid JSON in this exact format:
{{
  "intent": "schedule_call" | "send_resume" | "deadline" | "technical_assessment" | "multi_step_process" | "linkedin_followup" | "other",
  "constraints": {{
    "dates": ["YYYY-MM-DD"],
    "times": ["HH:MM"],
    "deadlines": ["YYYY-MM-DDTHH:MM:SS"] or ["YYYY-MM-DD"],
    "duration": "30min" | "1 hour" | etc.,
    "timeConstraints": "Friday afternoon" | "next week" | etc.,
    "specificConstraints": ["only free Friday afternoon", "need by Thursday EOD"],
    "requirements": ["send resume", "complete form"]
  }},
  "requiredActions": ["action1", "action2"],
  "actionItems": ["item1", "item2"],
  "senderInfo": {{
    "name": "Sender Name",
    "company": "Company Name" or null,
    "linkedInProfileUrl": "https://linkedin.com/in/..." or null,
    "email": "{email.sender}"
  }},
  "platform": "{platform}",
  "priority": "high" | "medium" | "low",
  "companyCategory": "high" | "medium" | "low" | "unknown",
  "companyName": "extracted company name or empty string",
  "linkedInProfileUrl": "{email.linkedin_profile_url or ""}",
  "constraintsText": "Human-readable summary of all constraints"
}}"""
