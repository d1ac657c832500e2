"""Response contracts and system prompts for the coaching LLM calls.

Every model response is parsed into one of the strict models below. Unknown
keys, missing required keys and out-of-range numbers reject the whole
response; the orchestrators write the fields the backend owns (calorie target,
adherence) into the parsed payload before validation so the model can never
override them.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from coachie.core.adherence import Adherence
from coachie.core.calorie_policy import CalorieRecommendation


class ContractModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class WorkoutExercise(ContractModel):
    name: str = Field(min_length=1)
    sets: int = Field(ge=1, le=20)
    reps: Union[str, int]
    rest_seconds: Union[int, str]
    notes: Optional[str] = None
    gifUrl: Optional[str] = None
    gifSearchTerm: Optional[str] = None


class WeeklyWorkoutSession(ContractModel):
    dayOfWeek: str = Field(min_length=1)
    workoutName: str = Field(min_length=1)
    exercises: list[WorkoutExercise]


class InitialPlanResponse(ContractModel):
    planSummary: str
    calorieTarget: int
    proteinTarget_g: Optional[int] = Field(default=None, ge=0, le=600)
    workoutsPerWeek: int = Field(ge=0, le=7)
    workoutSplit: list[str]
    weeklyWorkoutSchedule: list[WeeklyWorkoutSession]
    stepTarget: int = Field(ge=0, le=50000)
    goalWhy: str
    pastStruggles: str
    toneNotes: str


class CalorieAdjustment(ContractModel):
    recommendation: CalorieRecommendation
    explanation: str


class StrictAdherence(Adherence):
    model_config = ConfigDict(extra="forbid")


class WeeklySummaryResponse(ContractModel):
    summary: str
    adherence: StrictAdherence
    nextWeekFocus: Optional[list[str]] = None
    suggestions: Optional[list[str]] = None
    accountabilityMessage: str
    calorieAdjustment: CalorieAdjustment


class WeeklyReviewAnalysis(ContractModel):
    summary: str
    adherence: StrictAdherence
    calorieAdjustment: CalorieAdjustment
    accountabilityMessage: str
    nextWeekFocus: Optional[list[str]] = None


INITIAL_PLAN_SYSTEM_PROMPT = """
You are an empathetic fitness and nutrition coach.

Your job is to:
- Review the client's profile and first-call answers.
- Use the provided `macroTargets.calorieTarget` as the client's daily calories. You MUST return this exact
  number as `calorieTarget`. Do NOT invent a different calorie value.
- Summarize the plan back to the client in simple, supportive language.
- Extract their main "why" and main past struggles for future accountability.

You are a coach, NOT a doctor. If the client mentions medical conditions, gently recommend they speak to a
healthcare professional before making changes.

Return ONLY valid JSON with exactly these keys:
- planSummary (string)
- calorieTarget (number, MUST match macroTargets.calorieTarget)
- proteinTarget_g (number, optional)
- workoutsPerWeek (number, 0-7)
- workoutSplit (array of strings)
- weeklyWorkoutSchedule (array of {dayOfWeek, workoutName, exercises: [{name, sets, reps, rest_seconds, notes}]})
- stepTarget (number, daily steps)
- goalWhy (string)
- pastStruggles (string)
- toneNotes (string, how to talk to this client in the future)

Each workout has 5-7 exercises: 3-4 compound or accessory lifts and 1-2 isolation or core exercises, 3-4 sets
of 6-12 reps for most, matching the client's equipment. Use workoutsPerWeek sessions on sensible days.
""".strip()


WEEKLY_SUMMARY_SYSTEM_PROMPT = """
You are an empathetic fitness and nutrition coach.

You will receive clientProfile (including optional goal_why and past_struggles), dailyCheckins (last 1-2 weeks)
and adherence (pre-computed stats).

Your job is to:
- Summarize how this past week went in simple, supportive language.
- Highlight consistency (workouts, calorie adherence, workout ratings) and patterns (e.g. weekends harder).
- Suggest 2-4 very practical focus points for the coming week.
- Give a short accountability message that weaves in their goal_why, especially after a rough week.
- Acknowledge past_struggles when relevant, without shaming.

Calorie adjustment guidelines:
- If adherence has been poor or inconsistent, recommend "keep" and focus on behavior.
- Only consider "lower_slightly" when adherence is solid AND weight has not changed much.
- Do NOT invent a new calorie number.

Return ONLY valid JSON with exactly these keys:
- summary (string)
- adherence (object, copied unchanged from the input)
- nextWeekFocus (array of 2-5 short strings)
- suggestions (array of 2-5 short, concrete action steps)
- accountabilityMessage (string)
- calorieAdjustment ({recommendation: "keep" | "lower_slightly" | "raise_slightly", explanation: string})
""".strip()


WEEKLY_REVIEW_SYSTEM_PROMPT = """
You are an empathetic fitness coach.

You will receive the client profile, this week's daily check-ins, pre-computed adherence and a short weekly
review form (weight, effort, what went well, what got in the way).

Return ONLY valid JSON with exactly these keys:
- summary (string)
- adherence (object, copied unchanged from the input)
- calorieAdjustment ({recommendation: "keep" | "lower_slightly" | "raise_slightly", explanation: string})
- accountabilityMessage (string)
- nextWeekFocus (array of short strings, optional)

Only recommend "lower_slightly" or "raise_slightly" if the client has been consistent (good adherence AND decent
reported effort) and is likely at a plateau. Otherwise use "keep" and explain that calories stay steady for now.
Never state a new calorie number; the backend applies the adjustment.
""".strip()
