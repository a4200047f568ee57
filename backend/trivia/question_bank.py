from typing import List

from .models import (
    MoreOrLessQuestion,
    MultipleChoiceQuestion,
    NumericalQuestion,
    Question,
    TrueFalseQuestion,
)

QUESTION_BANK: List[Question] = [
    MultipleChoiceQuestion(
        id="q1",
        text="What percentage of the human body is made up of water?",
        category="Biology",
        difficulty="easy",
        options=["30-40%", "50-60%", "60-70%", "80-90%"],
        correct_answer=2,
        explanation="The human body is approximately 60-70% water, varying by age, sex, and body composition.",
    ),
    MultipleChoiceQuestion(
        id="q2",
        text="How long does it take for light from the Sun to reach Earth?",
        category="Physics",
        difficulty="medium",
        options=["8 seconds", "8 minutes", "8 hours", "8 days"],
        correct_answer=1,
        explanation="Sunlight takes about 8 minutes and 20 seconds to reach Earth, travelling at 299,792 km/s.",
    ),
    MultipleChoiceQuestion(
        id="q3",
        text="What is the most abundant gas in Earth's atmosphere?",
        category="Earth Science",
        difficulty="easy",
        options=["Oxygen", "Carbon Dioxide", "Nitrogen", "Argon"],
        correct_answer=2,
        explanation="Nitrogen makes up about 78% of Earth's atmosphere, while oxygen is around 21%.",
    ),
    MultipleChoiceQuestion(
        id="q4",
        text="At what temperature are Celsius and Fahrenheit equal?",
        category="Physics",
        difficulty="hard",
        options=["-40°", "-20°", "0°", "-273°"],
        correct_answer=0,
        explanation="At -40 degrees, both Celsius and Fahrenheit scales show the same value.",
    ),
    MultipleChoiceQuestion(
        id="q5",
        text="How many bones does an adult human have?",
        category="Biology",
        difficulty="medium",
        options=["186", "206", "226", "246"],
        correct_answer=1,
        explanation="Adults have 206 bones; babies are born with about 270 that fuse as they grow.",
    ),
    MultipleChoiceQuestion(
        id="q6",
        text="What is the speed of sound at sea level?",
        category="Physics",
        difficulty="medium",
        options=["343 m/s", "500 m/s", "1000 m/s", "1500 m/s"],
        correct_answer=0,
        explanation="Sound travels at approximately 343 metres per second at sea level and 20°C.",
    ),
    MultipleChoiceQuestion(
        id="q7",
        text="What is the pH of pure water?",
        category="Chemistry",
        difficulty="easy",
        options=["5", "7", "9", "11"],
        correct_answer=1,
        explanation="Pure water has a pH of 7, which is neutral: neither acidic nor basic.",
    ),
    MultipleChoiceQuestion(
        id="q8",
        text="How many planets in our solar system have rings?",
        category="Astronomy",
        difficulty="hard",
        options=["1", "2", "4", "6"],
        correct_answer=2,
        explanation="Jupiter, Saturn, Uranus and Neptune all have rings. Saturn's are the most visible.",
    ),
    MultipleChoiceQuestion(
        id="q9",
        text="What is the smallest unit of life?",
        category="Biology",
        difficulty="easy",
        options=["Atom", "Molecule", "Cell", "Organ"],
        correct_answer=2,
        explanation="The cell is the smallest unit of life that can function independently.",
    ),
    MultipleChoiceQuestion(
        id="q10",
        text="What is the chemical formula for table salt?",
        category="Chemistry",
        difficulty="medium",
        options=["NaCl", "KCl", "CaCl₂", "NaOH"],
        correct_answer=0,
        explanation="Table salt is sodium chloride with the chemical formula NaCl.",
    ),
    MultipleChoiceQuestion(
        id="q11",
        text="How many years does it take for Pluto to orbit the Sun?",
        category="Astronomy",
        difficulty="hard",
        options=["84 years", "165 years", "248 years", "365 years"],
        correct_answer=2,
        explanation="Pluto takes about 248 Earth years to complete one orbit around the Sun.",
    ),
    MultipleChoiceQuestion(
        id="q12",
        text="Which gas do plants absorb from the atmosphere for photosynthesis?",
        category="Biology",
        difficulty="easy",
        options=["Oxygen", "Nitrogen", "Carbon Dioxide", "Hydrogen"],
        correct_answer=2,
        explanation="Plants absorb carbon dioxide (CO₂) and release oxygen during photosynthesis.",
    ),
    TrueFalseQuestion(
        id="q13",
        text="Lightning never strikes the same place twice.",
        category="Earth Science",
        difficulty="easy",
        correct_answer=False,
        explanation="Tall structures are struck repeatedly; the Empire State Building is hit about 20 times a year.",
    ),
    TrueFalseQuestion(
        id="q14",
        text="Venus rotates in the opposite direction to most planets in the solar system.",
        category="Astronomy",
        difficulty="medium",
        correct_answer=True,
        explanation="Venus has a retrograde rotation, so the Sun rises in the west there.",
    ),
    TrueFalseQuestion(
        id="q15",
        text="Diamond is the hardest naturally occurring material.",
        category="Chemistry",
        difficulty="easy",
        correct_answer=True,
        explanation="Diamond scores 10 on the Mohs scale, the top of the scale for natural minerals.",
    ),
    TrueFalseQuestion(
        id="q16",
        text="Sound travels faster in air than in water.",
        category="Physics",
        difficulty="medium",
        correct_answer=False,
        explanation="Sound travels roughly four times faster in water (about 1,480 m/s) than in air.",
    ),
    MoreOrLessQuestion(
        id="q17",
        text="Which has more neurons?",
        category="Biology",
        difficulty="hard",
        option1="A human brain",
        option2="An octopus",
        correct_answer=0,
        explanation="A human brain has about 86 billion neurons; an octopus has about 500 million.",
    ),
    MoreOrLessQuestion(
        id="q18",
        text="Which is longer?",
        category="Geography",
        difficulty="medium",
        option1="The Amazon River",
        option2="The Nile River",
        correct_answer=1,
        explanation="The Nile is usually measured at about 6,650 km, the Amazon at about 6,400 km.",
    ),
    MoreOrLessQuestion(
        id="q19",
        text="Which planet has more moons?",
        category="Astronomy",
        difficulty="hard",
        option1="Jupiter",
        option2="Saturn",
        correct_answer=1,
        explanation="Saturn has over 140 confirmed moons, more than Jupiter's 95.",
    ),
    MoreOrLessQuestion(
        id="q20",
        text="Which is hotter?",
        category="Physics",
        difficulty="medium",
        option1="The surface of the Sun",
        option2="A lightning bolt",
        correct_answer=1,
        explanation="A lightning bolt reaches about 30,000 K, five times the Sun's 5,800 K surface.",
    ),
    NumericalQuestion(
        id="q21",
        text="How many kilometres is the Moon from Earth on average (in thousands)?",
        category="Astronomy",
        difficulty="hard",
        correct_answer=384,
        unit="thousand km",
        acceptable_range=20,
        explanation="The average Earth-Moon distance is about 384,400 km.",
    ),
    NumericalQuestion(
        id="q22",
        text="At what temperature does water boil at sea level?",
        category="Physics",
        difficulty="easy",
        correct_answer=100,
        unit="°C",
        acceptable_range=0,
        explanation="At standard atmospheric pressure, pure water boils at 100°C.",
    ),
    NumericalQuestion(
        id="q23",
        text="How many elements are there in the periodic table?",
        category="Chemistry",
        difficulty="medium",
        correct_answer=118,
        acceptable_range=2,
        explanation="118 elements have been confirmed, ending with oganesson.",
    ),
    NumericalQuestion(
        id="q24",
        text="How many hearts does an octopus have?",
        category="Biology",
        difficulty="medium",
        correct_answer=3,
        acceptable_range=0,
        explanation="An octopus has two branchial hearts and one systemic heart.",
    ),
]
