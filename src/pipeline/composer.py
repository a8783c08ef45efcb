"""Response composer: turns ranked recipes and conflicts into the final answer."""

from typing import Optional

from src.models.models import (
    ConflictResult,
    ConflictType,
    ConversationContext,
    ConversationResponse,
    Intent,
    IntentType,
    Recipe,
    SkillLevel,
)
from src.pipeline.extractor import meets_confidence_threshold
from src.pipeline.validator import ProfileValidator

MAX_FOLLOW_UPS = 3
FALLBACK_CONFIDENCE_PENALTY = 0.2
MIN_CONFIDENCE = 0.1

CLARIFYING_QUESTION = "Could you tell me a bit more about what you're looking for?"

INTENT_LEAD_INS = {
    IntentType.NUTRITIONAL_ADVICE: "I've focused on balanced, nutritious options.",
    IntentType.COOKING_TECHNIQUE_HELP: "These are great for practicing the technique you asked about.",
    IntentType.MEAL_PLANNING: "These should fit nicely into your meal plan.",
    IntentType.DIETARY_MODIFICATION: "I've adapted these to your dietary needs.",
    IntentType.COOKING_TROUBLESHOOTING: "Here's something that should be easier to get right.",
}

EMOTIONAL_FOLLOW_UPS = {
    "frustrated": "Would a simpler recipe help right now?",
    "overwhelmed": "Should I break this down into smaller steps?",
    "excited": "Want to try something a little more adventurous next?",
}

ERROR_MESSAGE = (
    "I apologize, but I'm having trouble processing your request right now. Please try again in a moment."
)
ERROR_FOLLOW_UPS = [
    "Can you rephrase your request?",
    "Would you like to try a different recipe?",
    "Do you need help with something else?",
]


def recipe_message(recipes: list[Recipe]) -> str:
    if not recipes:
        return "I couldn't find recipes matching that just now."
    if len(recipes) == 1:
        return f"Here's a recipe I think you'll love: **{recipes[0].title}**."
    return f"Here are {len(recipes)} recipes tailored to you, starting with **{recipes[0].title}**."


class ResponseComposer:
    """Assembles ConversationResponse objects."""

    def follow_up_questions(
        self,
        intent: Intent,
        recipes: list[Recipe],
        context: ConversationContext,
    ) -> list[str]:
        """Contextual follow-ups, at most three.

        Order: clarifier for low-confidence intents, emotional-state prompt,
        then the recipe/urgency/skill questions.
        """
        questions: list[str] = []
        if not meets_confidence_threshold(intent):
            questions.append(CLARIFYING_QUESTION)
        if context.emotional_state in EMOTIONAL_FOLLOW_UPS:
            questions.append(EMOTIONAL_FOLLOW_UPS[context.emotional_state])

        if len(recipes) > 1:
            questions.append("Which recipe interests you most?")
            questions.append("Would you like detailed cooking tips for any of these?")
        if recipes:
            questions.append("Do you need ingredient substitutions?")
            questions.append("Would you like nutritional information for these recipes?")
        if context.urgency == "high":
            questions.append("Need an even quicker option?")
        if context.profile.skill_level == SkillLevel.BEGINNER:
            questions.append("Would you like step-by-step cooking guidance?")

        return questions[:MAX_FOLLOW_UPS]

    def conflict_response(self, intent: Intent, conflict: ConflictResult) -> ConversationResponse:
        """Blocking dietary conflict: explain it, offer alternatives, no recipes."""
        restriction = conflict.restriction or "compliant"
        follow_ups = [
            conflict.alternative_prompt,
            f"Would you like to see other {restriction} recipes?",
            "Should I update your dietary preferences?",
        ]
        return ConversationResponse(
            message=ProfileValidator.conflict_message(conflict),
            recipes=[],
            follow_up_questions=[q for q in follow_ups if q][:MAX_FOLLOW_UPS],
            confidence=intent.confidence,
            intent=intent.type,
            conflict=conflict,
        )

    def compose(
        self,
        intent: Intent,
        recipes: list[Recipe],
        conflict: Optional[ConflictResult],
        context: ConversationContext,
        used_fallback: bool = False,
    ) -> ConversationResponse:
        """Build the response for one turn.

        Args:
            intent: Classified intent.
            recipes: Enhanced, ranked recipes.
            conflict: Validator result. A dietary conflict short-circuits to
                conflict_response(); advisory conflicts prefix the message.
            context: Per-turn context (emotional state, urgency, profile).
            used_fallback: True when the fixed fallback set was served.

        Returns:
            ConversationResponse.
        """
        if conflict is not None and not conflict.should_generate_recipe:
            return self.conflict_response(intent, conflict)

        parts = []
        if conflict is not None and conflict.conflict_type != ConflictType.NONE:
            parts.append(ProfileValidator.conflict_message(conflict))
        if recipes and intent.type in INTENT_LEAD_INS:
            parts.append(INTENT_LEAD_INS[intent.type])
        parts.append(recipe_message(recipes))

        confidence = intent.confidence
        if used_fallback:
            confidence = max(MIN_CONFIDENCE, confidence - FALLBACK_CONFIDENCE_PENALTY)

        return ConversationResponse(
            message=" ".join(parts),
            recipes=recipes,
            follow_up_questions=self.follow_up_questions(intent, recipes, context),
            confidence=round(confidence, 2),
            intent=intent.type,
            conflict=conflict if conflict is not None and conflict.conflict_type != ConflictType.NONE else None,
        )

    @staticmethod
    def error_response() -> ConversationResponse:
        return ConversationResponse(
            message=ERROR_MESSAGE,
            recipes=[],
            follow_up_questions=list(ERROR_FOLLOW_UPS),
            confidence=MIN_CONFIDENCE,
        )
