from triagedesk.client.cli import main

main()
