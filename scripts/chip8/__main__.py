from chip8.cli import main

main()
