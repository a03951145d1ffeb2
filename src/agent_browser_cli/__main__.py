from agent_browser_cli.cli import main

main()
