"""Fixed advocate dataset used for seeding and as the static fallback."""

DEGREES = ('MD', 'PhD', 'MSW')

SPECIALTIES = [
    "Bipolar",
    "LGBTQ",
    "Medication/Prescribing",
    "Suicide History/Attempts",
    "General Mental Health (anxiety, depression, stress, grief, life transitions)",
    "Men's issues",
    "Relationship Issues (family, friends, couple, etc)",
    "Trauma & PTSD",
    "Personality disorders",
    "Personal growth",
    "Substance use/abuse",
    "Pediatrics",
    "Women's issues (post-partum, infertility, family planning)",
    "Chronic pain",
    "Weight loss & nutrition",
    "Eating disorders",
    "Diabetic Diet and nutrition",
    "Coaching (leadership, career, academic and wellness)",
    "Life coaching",
    "Obsessive-compulsive disorders",
    "Neuropsychological evaluations & testing (ADHD testing)",
    "Attention and Hyperactivity (ADHD)",
    "Sleep issues",
    "Schizophrenia and psychotic disorders",
    "Learning disorders",
    "Domestic abuse",
]


def _advocate(first_name, last_name, city, degree, specialty_indexes, years, phone):
    return {
        'firstName': first_name,
        'lastName': last_name,
        'city': city,
        'degree': degree,
        'specialties': [SPECIALTIES[i] for i in specialty_indexes],
        'yearsOfExperience': years,
        'phoneNumber': phone,
    }


ADVOCATE_DATA = [
    _advocate('Jane', 'Doe', 'New York', 'MD', [0, 4, 7], 10, '5551234567'),
    _advocate('John', 'Smith', 'Los Angeles', 'PhD', [5, 6], 8, '5559876543'),
    _advocate('Emily', 'Johnson', 'Chicago', 'MSW', [4, 12, 25], 5, '5554567890'),
    _advocate('Michael', 'Brown', 'Houston', 'MD', [2, 0, 23], 12, '5556543210'),
    _advocate('Emily', 'Davis', 'Phoenix', 'PhD', [8, 9, 19], 7, '5553210987'),
    _advocate('Chris', 'Martinez', 'Philadelphia', 'MSW', [10, 3], 9, '5557890123'),
    _advocate('Jessica', 'Taylor', 'San Antonio', 'MD', [11, 21, 24], 11, '5554561234'),
    _advocate('David', 'Harris', 'San Diego', 'PhD', [20, 21], 6, '5557896543'),
    _advocate('Laura', 'Clark', 'Dallas', 'MSW', [1, 6, 9], 4, '5550123456'),
    _advocate('Daniel', 'Lewis', 'San Jose', 'MD', [13, 22, 2], 13, '5553217654'),
    _advocate('Sarah', 'Lee', 'Austin', 'PhD', [15, 14, 16], 10, '5551238765'),
    _advocate('James', 'King', 'Jacksonville', 'MSW', [17, 18], 5, '5556540987'),
    _advocate('Megan', 'Green', 'San Francisco', 'MD', [7, 3, 4], 14, '5553214567'),
    _advocate('Joshua', 'Walker', 'Columbus', 'PhD', [1, 5, 10], 9, '5557892345'),
    _advocate('Amanda', 'Hall', 'Fort Worth', 'MSW', [12, 6, 25], 3, '5559871234'),
]
