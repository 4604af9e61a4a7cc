from notification_relay.cli.main import main

main()
