LBS_PER_KG = 2.20462

GOAL_FACTORS = {
    "lose_weight": 0.8,
    "gain_muscle": 1.1,
    "recomp": 0.95,
}


def lbs_to_kg(value: float) -> float:
    return round(value / LBS_PER_KG, 1)


def activity_factor(realistic_workouts_per_week: int) -> float:
    if realistic_workouts_per_week <= 1:
        return 1.2
    if realistic_workouts_per_week <= 3:
        return 1.375
    if realistic_workouts_per_week <= 5:
        return 1.55
    if realistic_workouts_per_week <= 6:
        return 1.725
    return 1.9


def daily_calorie_needs(
    weight_kg: float, height_cm: float, age: int, gender: str, realistic_workouts_per_week: int
) -> float:
    # Mifflin-St Jeor; anything other than "male" uses the female constant.
    bmr = 10 * weight_kg + 6.25 * height_cm - 5 * age
    bmr += 5 if gender == "male" else -161
    return bmr * activity_factor(realistic_workouts_per_week)


def calorie_target_for_goal(tdee: float, goal_type: str) -> int:
    adjusted = tdee * GOAL_FACTORS.get(goal_type, 1.0)
    return int(round(adjusted / 50.0) * 50)


def compute_calorie_target(
    *,
    weight_kg: float,
    height_cm: float,
    age: int,
    gender: str,
    realistic_workouts_per_week: int,
    goal_type: str,
) -> int:
    tdee = daily_calorie_needs(weight_kg, height_cm, age, gender, realistic_workouts_per_week)
    return calorie_target_for_goal(tdee, goal_type)
