from dataclasses import dataclass

from user_agents import parse

@dataclass(frozen=True)
class ResponderAgent:
    device: str | None = None
    browser: str | None = None
    os: str | None = None

def parse_user_agent(ua: str | None) -> ResponderAgent:
    if not ua:
        return ResponderAgent()
    u = parse(ua)
    device = "Mobile" if u.is_mobile else "Tablet" if u.is_tablet else "PC"
    return ResponderAgent(device=device, browser=u.browser.family, os=u.os.family)
