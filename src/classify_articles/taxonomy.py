"""Default ESG topic taxonomy."""

from classify_articles.models import TopicConfig

DEFAULT_TOPICS: list[TopicConfig] = [
    TopicConfig(
        slug="climate-carbon",
        name="Climate & Carbon",
        keywords=[
            "climate change",
            "carbon emissions",
            "carbon footprint",
            "greenhouse gas",
            "ghg",
            "net zero",
            "net-zero",
            "carbon neutral",
            "decarbonization",
            "decarbonisation",
            "carbon capture",
            "climate risk",
            "climate disclosure",
            "scope 1",
            "scope 2",
            "scope 3",
            "paris agreement",
            "sbti",
            "science based targets",
        ],
    ),
    TopicConfig(
        slug="esg-regulation",
        name="ESG Regulation",
        keywords=[
            "esg regulation",
            "esg disclosure",
            "csrd",
            "sfdr",
            "eu taxonomy",
            "sec climate",
            "tcfd",
            "issb",
            "ifrs sustainability",
            "greenwashing",
            "esg compliance",
            "sustainability reporting",
            "double materiality",
            "esg standards",
        ],
    ),
    TopicConfig(
        slug="sustainable-finance",
        name="Sustainable Finance",
        keywords=[
            "sustainable finance",
            "green bonds",
            "sustainability-linked",
            "esg investing",
            "sustainable investing",
            "impact investing",
            "esg funds",
            "esg ratings",
            "green loans",
            "climate finance",
            "transition finance",
            "blended finance",
            "carbon credits",
            "carbon offset",
        ],
    ),
    TopicConfig(
        slug="social-responsibility",
        name="Social Responsibility",
        keywords=[
            "human rights",
            "labor rights",
            "supply chain",
            "modern slavery",
            "child labor",
            "dei",
            "diversity equity inclusion",
            "workplace safety",
            "fair trade",
            "living wage",
            "worker welfare",
            "community engagement",
            "social impact",
            "stakeholder engagement",
        ],
    ),
    TopicConfig(
        slug="corporate-governance",
        name="Corporate Governance",
        keywords=[
            "corporate governance",
            "board diversity",
            "executive compensation",
            "shareholder activism",
            "proxy voting",
            "esg governance",
            "business ethics",
            "anti-corruption",
            "whistleblower",
            "corporate accountability",
            "fiduciary duty",
            "board oversight",
        ],
    ),
    TopicConfig(
        slug="renewable-energy",
        name="Renewable Energy",
        keywords=[
            "renewable energy",
            "solar power",
            "wind power",
            "clean energy",
            "energy transition",
            "battery storage",
            "green hydrogen",
            "offshore wind",
            "solar farm",
            "renewable portfolio",
            "ppa",
            "power purchase agreement",
            "energy efficiency",
            "electrification",
        ],
    ),
]
