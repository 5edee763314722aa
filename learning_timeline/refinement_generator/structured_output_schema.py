""" Schemas for Gemini's structured output """

_STRING_LIST = {
    "type": "ARRAY",
    "items": {
        "type": "STRING"
    }
}

ENGAGEMENT_ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "engagementRate": {
            "type": "OBJECT",
            "properties": {
                "score": {"type": "NUMBER"},
                "strengths": _STRING_LIST,
                "weaknesses": _STRING_LIST,
                "recommendations": _STRING_LIST
            },
            "required": ["score"]
        },
        "accessibilityScore": {
            "type": "OBJECT",
            "properties": {
                "score": {"type": "NUMBER"},
                "prerequisites": _STRING_LIST,
                "barriers": _STRING_LIST,
                "improvements": _STRING_LIST
            },
            "required": ["score"]
        },
        "activePassiveBalance": {
            "type": "OBJECT",
            "properties": {
                "score": {"type": "NUMBER"},
                "activePercentage": {"type": "NUMBER"},
                "passivePercentage": {"type": "NUMBER"},
                "analysis": {"type": "STRING"},
                "recommendations": _STRING_LIST
            },
            "required": ["score"]
        },
        "learningRateGraph": {
            "type": "OBJECT",
            "properties": {
                "segments": {
                    "type": "ARRAY",
                    "items": {
                        "type": "OBJECT",
                        "properties": {
                            "timeRange": {"type": "STRING"},
                            "score": {"type": "NUMBER"},
                            "reason": {"type": "STRING"}
                        },
                        "required": ["timeRange", "score"]
                    }
                },
                "criticalDropPoints": {
                    "type": "ARRAY",
                    "items": {
                        "type": "OBJECT",
                        "properties": {
                            "timestamp": {"type": "NUMBER"},
                            "reason": {"type": "STRING"}
                        },
                        "required": ["timestamp", "reason"]
                    }
                },
                "analysis": {"type": "STRING"}
            },
            "required": ["segments"]
        },
        "pedagogicalScore": {
            "type": "OBJECT",
            "properties": {
                "score": {"type": "NUMBER"},
                "strengths": _STRING_LIST,
                "gaps": _STRING_LIST,
                "improvements": _STRING_LIST
            },
            "required": ["score"]
        },
        "overallAnalysis": {
            "type": "OBJECT",
            "properties": {
                "totalScore": {"type": "NUMBER"},
                "tier": {
                    "type": "STRING",
                    "enum": ["Excellent", "Good", "Needs Improvement", "Poor"]
                },
                "topPriorities": _STRING_LIST
            },
            "required": ["totalScore", "tier", "topPriorities"]
        }
    },
    "required": [
        "engagementRate",
        "accessibilityScore",
        "activePassiveBalance",
        "learningRateGraph",
        "pedagogicalScore",
        "overallAnalysis"
    ]
}
