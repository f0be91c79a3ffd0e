import argparse

from blacksmith_tools.utils.browser import CredentialResolver, Token, get_platform


def main() -> None:
    parser = argparse.ArgumentParser(description="Check whether a Blacksmith session can be recovered from the browser.")
    parser.add_argument("--browser", default="chrome", help="chrome, chromium, brave or edge.")
    parser.add_argument("--profile", default="Default", help="Browser profile directory name.")
    parser.add_argument("--domain", default="blacksmith.sh", help="Cookie domain to look for.")
    args = parser.parse_args()

    platform = get_platform(args.browser, args.profile)
    paths = platform.locate_paths()
    print(f"Platform: {platform.tag}")
    print(f"Cookie databases: {', '.join(str(path) for path in paths) or 'none'}")

    outcome = CredentialResolver(platform, domain=args.domain).resolve()
    if isinstance(outcome, Token):
        print(f"Session cookie found: {outcome.cookie_name} ({len(outcome.value)} chars)")
    else:
        print(f"No session cookie: {type(outcome).__name__} - {outcome.reason}")


if __name__ == "__main__":
    main()
