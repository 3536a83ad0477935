# testgenius/core/dummy_data.py
from typing import List, Dict, Any

# Canned questions served when USE_DUMMY_DATA is on and the AI service is not called
DUMMY_QUESTIONS_EN: List[Dict[str, Any]] = [
    {
        "question": "Which software development methodology emphasizes iterative development and frequent customer collaboration?",
        "options": ["Waterfall Model", "Agile Methodology", "Spiral Model", "V-Model"],
        "answer": "Agile Methodology"
    },
    {
        "question": "What is the primary advantage of a normalized database design?",
        "options": [
            "Faster queries in every scenario",
            "Reduced data redundancy and improved integrity",
            "Simpler structure for beginners",
            "Built-in encryption"
        ],
        "answer": "Reduced data redundancy and improved integrity"
    },
    {
        "question": "Which cloud service model gives the most control over the underlying infrastructure?",
        "options": ["SaaS", "PaaS", "IaaS", "FaaS"],
        "answer": "IaaS"
    },
    {
        "question": "Which security principle ensures data has not been altered in transit?",
        "options": ["Confidentiality", "Integrity", "Availability", "Authentication"],
        "answer": "Integrity"
    },
    {
        "question": "Which diagram best shows task dependencies over a project timeline?",
        "options": ["Pie chart", "Gantt chart", "Flow chart", "Org chart"],
        "answer": "Gantt chart"
    },
    {
        "question": "Which machine learning technique is most commonly used for spam detection?",
        "options": ["Linear regression", "Classification", "Clustering", "Time series forecasting"],
        "answer": "Classification"
    },
    {
        "question": "What is the main advantage of a microservices architecture?",
        "options": ["Simpler deployment", "Lower costs", "Independent scaling of services", "Less network traffic"],
        "answer": "Independent scaling of services"
    },
    {
        "question": "What does HTTP status code 404 indicate?",
        "options": ["Server error", "Resource not found", "Unauthorized", "Redirect"],
        "answer": "Resource not found"
    },
]

DUMMY_QUESTIONS_HI: List[Dict[str, Any]] = [
    {
        "question": "भारत की राजधानी क्या है?",
        "options": ["मुंबई", "नई दिल्ली", "कोलकाता", "चेन्नई"],
        "answer": "नई दिल्ली"
    },
    {
        "question": "सूर्य किस दिशा में उगता है?",
        "options": ["पश्चिम", "उत्तर", "पूर्व", "दक्षिण"],
        "answer": "पूर्व"
    },
    {
        "question": "एक सप्ताह में कितने दिन होते हैं?",
        "options": ["पाँच", "छह", "सात", "आठ"],
        "answer": "सात"
    },
    {
        "question": "पानी का रासायनिक सूत्र क्या है?",
        "options": ["CO2", "H2O", "O2", "NaCl"],
        "answer": "H2O"
    },
    {
        "question": "हिंदी वर्णमाला में कितने स्वर होते हैं?",
        "options": ["ग्यारह", "तेरह", "दस", "पंद्रह"],
        "answer": "ग्यारह"
    },
]

def get_dummy_questions(language: str, count: int) -> List[Dict[str, Any]]:
    """Cycle through the canned questions to produce the requested count"""
    templates = DUMMY_QUESTIONS_HI if language == "hi" else DUMMY_QUESTIONS_EN
    questions = []
    for i in range(count):
        template = templates[i % len(templates)]
        question = dict(template)
        if i >= len(templates):
            question["question"] = f"{template['question']} (#{i + 1})"
        questions.append(question)
    return questions
