from booking_service.domain.entities.service import Service


DEFAULT_SERVICES: list[Service] = [
    Service(
        id="consultation",
        name="Free Growth Consultation",
        duration_minutes=30,
        description="Discover opportunities to boost your website traffic",
    ),
    Service(
        id="demo",
        name="Strategy Demo",
        duration_minutes=60,
        description="See our proven traffic generation strategies in action",
    ),
    Service(
        id="audit",
        name="Website Audit Review",
        duration_minutes=45,
        description="Get a comprehensive analysis of your current traffic",
    ),
    Service(
        id="strategy",
        name="Custom Strategy Session",
        duration_minutes=90,
        description="Develop a personalized traffic growth plan",
    ),
]
