from pydantic import BaseModel, Field


class DomainReplacementModel(BaseModel):
    from_: str = Field(
        ..., alias='from', min_length=1, description='Cookie domain to replace', examples=['oreilly.review']
    )
    to: str = Field(..., description='Cookie domain to substitute', examples=['oreilly.local'])

    class Config:
        populate_by_name = True


class CookieRewriteConfigModel(BaseModel):
    match_domains: list[str] = Field(
        default_factory=list,
        alias='matchDomains',
        description='Hostname patterns that trigger rewriting; "*" matches any run of characters',
        examples=[['*.local']],
    )
    replacements: list[DomainReplacementModel] = Field(
        default_factory=list,
        description='Ordered from/to pairs applied to every Set-Cookie Domain attribute',
    )

    class Config:
        populate_by_name = True


def create_default_config() -> CookieRewriteConfigModel:
    return CookieRewriteConfigModel(
        match_domains=['*.local'],
        replacements=[DomainReplacementModel(from_='oreilly.review', to='oreilly.local')],
    )
