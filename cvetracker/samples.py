import logging

from cvetracker.services.validator import validate_vulnerability

logger = logging.getLogger(__name__)

SAMPLE_VULNERABILITIES = [
    {
        "_id": 1,
        "name": "CVE-2024-0101",
        "dateLogged": "2024-03-15T00:00:00.000Z",
        "description": (
            "Critical zero-day vulnerability found in a major content management system (CMS), "
            "allowing remote code execution."
        ),
        "severity": 9.8,
        "status": "Pending",
    },
    {
        "_id": 2,
        "name": "CVE-2023-45678",
        "dateLogged": "2023-10-01T00:00:00.000Z",
        "description": "Buffer overflow in network service daemon leads to denial of service condition.",
        "severity": 6.5,
        "status": "Pending",
    },
    {
        "_id": 3,
        "name": "CVE-2022-99999",
        "dateLogged": "2022-07-20T00:00:00.000Z",
        "description": "Cross-site scripting (XSS) vulnerability impacting user profile pages.",
        "severity": 4.3,
        "status": "Pending",
    },
]


def seed_store(store) -> int:
    """Insert the sample CVEs into an empty store. Returns how many were added."""
    if store.count():
        return 0
    added = 0
    for sample in SAMPLE_VULNERABILITIES:
        store.insert(validate_vulnerability(sample))
        added += 1
    logger.info("seeded %d sample vulnerabilities", added)
    return added
